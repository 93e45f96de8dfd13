"""
Pydantic schemas for the API activity log
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class ActivityLogResponse(BaseModel):
    id: int
    user_id: Optional[int]
    endpoint: str
    method: str
    status_code: int
    ip_address: Optional[str]
    user_agent: Optional[str]
    details: Optional[str]
    error_message: Optional[str]
    created_at: Optional[datetime]
    
    class Config:
        from_attributes = True
