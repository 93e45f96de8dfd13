"""
Pydantic schemas for installer operations
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime

class InstallerBase(BaseModel):
    name: str = Field(..., max_length=255, description="Installer name")
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    skills: Optional[str] = Field(None, description="Free text, e.g. fibre, copper")
    is_active: Optional[int] = Field(1, ge=0, le=1)
    
    @validator('name')
    def strip_name(cls, v):
        return v.strip()

class InstallerCreate(InstallerBase):
    pass

class InstallerUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    skills: Optional[str] = None
    is_active: Optional[int] = Field(None, ge=0, le=1)
    
    @validator('name')
    def strip_name(cls, v):
        return v.strip() if v else v

class BulkInstallerCreate(BaseModel):
    installers: list[InstallerCreate] = Field(..., min_length=1)

class LinkUserRequest(BaseModel):
    user_id: int

class InstallerResponse(BaseModel):
    id: int
    user_id: Optional[int]
    name: str
    email: Optional[str]
    phone: Optional[str]
    skills: Optional[str]
    is_active: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True
