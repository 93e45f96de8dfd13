"""
Pydantic schemas for assignments and assignment history
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import date, datetime

from scheduler.models.assignment import ASSIGNMENT_STATUSES
from scheduler.schemas.installer import InstallerResponse
from scheduler.schemas.order import OrderResponse

HH_MM = r'^\d{2}:\d{2}$'

class AssignmentCreate(BaseModel):
    """Bind an order to an installer slot"""
    order_id: int
    installer_id: int
    scheduled_date: date
    scheduled_start_time: str = Field(..., pattern=HH_MM, description="24-hour HH:MM")
    scheduled_end_time: str = Field(..., pattern=HH_MM, description="24-hour HH:MM")
    notes: Optional[str] = None

class AssignmentUpdate(BaseModel):
    installer_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[str] = Field(None, pattern=HH_MM)
    scheduled_end_time: Optional[str] = Field(None, pattern=HH_MM)
    status: Optional[str] = None
    notes: Optional[str] = None
    
    @validator('status')
    def validate_status(cls, v):
        if v is not None and v not in ASSIGNMENT_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(ASSIGNMENT_STATUSES)}')
        return v

class ReassignRequest(BaseModel):
    """Move an assignment; omitted schedule fields keep their current values"""
    installer_id: int
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[str] = Field(None, pattern=HH_MM)
    scheduled_end_time: Optional[str] = Field(None, pattern=HH_MM)
    notes: Optional[str] = None

class QuickAssignRequest(BaseModel):
    order_id: int
    installer_id: int

class AssignmentResponse(BaseModel):
    id: int
    order_id: int
    installer_id: int
    scheduled_date: date
    scheduled_start_time: str
    scheduled_end_time: str
    actual_start_time: Optional[datetime]
    actual_end_time: Optional[datetime]
    status: str
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True

class RouteStop(BaseModel):
    """One stop on an installer's day, in visiting order"""
    sequence: int
    assignment: AssignmentResponse
    order: OrderResponse

class GridRow(BaseModel):
    installer: InstallerResponse
    slots: dict[str, AssignmentResponse]

class DailyGridResponse(BaseModel):
    date: date
    time_slots: list[str]
    installers: list[GridRow]

class AssignmentHistoryResponse(BaseModel):
    id: int
    assignment_id: Optional[int]
    order_id: int
    order_number: Optional[str]
    installer_id: int
    installer_name: Optional[str]
    scheduled_date: Optional[str]
    scheduled_start_time: Optional[str]
    scheduled_end_time: Optional[str]
    action: str
    assigned_by: Optional[int]
    assigned_by_name: Optional[str]
    notes: Optional[str]
    created_at: Optional[datetime]
    
    class Config:
        from_attributes = True
