"""
Pydantic schemas for configurable time slots
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class TimeSlotCreate(BaseModel):
    time: str = Field(..., min_length=1, max_length=20, description="12-hour time, e.g. 9:00 AM")
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[int] = Field(1, ge=0, le=1)

class TimeSlotUpdate(BaseModel):
    time: Optional[str] = Field(None, min_length=1, max_length=20)
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[int] = Field(None, ge=0, le=1)

class TimeSlotReorder(BaseModel):
    slot_ids: list[int] = Field(..., min_length=1, description="Slot ids in their new order")

class TimeSlotResponse(BaseModel):
    id: int
    time: str
    sort_order: int
    is_active: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True
