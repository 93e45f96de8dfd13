"""
Pydantic schemas for notes
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime

from scheduler.models.note import NOTE_TYPES, NOTE_STATUSES
from scheduler.models.order import PRIORITIES

DAY = r'^\d{4}-\d{2}-\d{2}$'

class NoteBase(BaseModel):
    date: str = Field(..., pattern=DAY, description="YYYY-MM-DD")
    service_number: Optional[str] = Field(None, max_length=100)
    order_number: Optional[str] = Field(None, max_length=100)
    customer_name: Optional[str] = Field(None, max_length=255)
    note_type: Optional[str] = Field("general")
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    priority: Optional[str] = Field("medium")
    status: Optional[str] = Field("open")
    
    @validator('note_type')
    def validate_note_type(cls, v):
        if v is not None and v not in NOTE_TYPES:
            raise ValueError(f'Note type must be one of: {", ".join(NOTE_TYPES)}')
        return v
    
    @validator('priority')
    def validate_priority(cls, v):
        if v is not None and v not in PRIORITIES:
            raise ValueError(f'Priority must be one of: {", ".join(PRIORITIES)}')
        return v
    
    @validator('status')
    def validate_status(cls, v):
        if v is not None and v not in NOTE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(NOTE_STATUSES)}')
        return v

class NoteCreate(NoteBase):
    pass

class NoteUpdate(BaseModel):
    date: Optional[str] = Field(None, pattern=DAY)
    service_number: Optional[str] = Field(None, max_length=100)
    order_number: Optional[str] = Field(None, max_length=100)
    customer_name: Optional[str] = Field(None, max_length=255)
    note_type: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    priority: Optional[str] = None
    status: Optional[str] = None
    
    @validator('note_type')
    def validate_note_type(cls, v):
        if v is not None and v not in NOTE_TYPES:
            raise ValueError(f'Note type must be one of: {", ".join(NOTE_TYPES)}')
        return v
    
    @validator('status')
    def validate_status(cls, v):
        if v is not None and v not in NOTE_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(NOTE_STATUSES)}')
        return v

class NoteResponse(NoteBase):
    id: int
    created_by: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True
