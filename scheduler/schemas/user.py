"""
Pydantic schemas for user operations
"""

from pydantic import BaseModel, Field, validator, EmailStr
from typing import Optional
from datetime import datetime
import re

from scheduler.models.user import USER_ROLES

class UserCreate(BaseModel):
    """Schema for creating a new user"""
    username: str = Field(..., min_length=3, max_length=50, description="Username (3-50 characters)")
    email: EmailStr = Field(..., description="Valid email address")
    name: Optional[str] = Field(None, max_length=255, description="Display name")
    password: str = Field(..., min_length=8, max_length=128, description="Password (minimum 8 characters)")
    
    @validator('username')
    def validate_username(cls, v):
        if not re.match(r'^[a-zA-Z0-9_.-]+$', v):
            raise ValueError('Username can only contain letters, numbers, dots, underscores, and hyphens')
        return v.lower()
    
    @validator('password')
    def validate_password(cls, v):
        if not re.search(r'[A-Za-z]', v) or not re.search(r'\d', v):
            raise ValueError('Password must contain at least one letter and one digit')
        return v

class UserLogin(BaseModel):
    """Schema for user login"""
    username_or_email: str = Field(..., description="Username or email address")
    password: str = Field(..., description="Password")
    
    @validator('username_or_email')
    def validate_username_or_email(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError('Username or email is required')
        return v

class RoleUpdate(BaseModel):
    role: str
    
    @validator('role')
    def validate_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError(f'Role must be one of: {", ".join(USER_ROLES)}')
        return v

class UserResponse(BaseModel):
    """Schema for user responses (excludes sensitive data)"""
    id: int
    username: str
    email: str
    name: Optional[str]
    role: str
    is_active: bool
    last_signed_in: Optional[datetime]
    created_at: Optional[datetime]
    
    class Config:
        from_attributes = True

class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
