"""
Pydantic schemas for Order operations
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Union
from datetime import datetime

from scheduler.models.order import ORDER_STATUSES, PRIORITIES, RESCHEDULE_REASONS

def _check_choice(value, allowed: list, label: str):
    if value is None:
        return value
    if value not in allowed:
        raise ValueError(f'{label} must be one of: {", ".join(allowed)}')
    return value

class OrderBase(BaseModel):
    """Base order schema"""
    order_number: Optional[str] = Field(None, max_length=100, description="Work order number")
    ticket_number: Optional[str] = Field(None, max_length=100)
    service_number: str = Field(..., min_length=1, max_length=100, description="Service number")
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_email: Optional[str] = Field(None, max_length=320)
    service_type: Optional[str] = Field(None, max_length=100)
    sales_modi_type: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    appointment_date: Optional[str] = Field(None, max_length=50, description="Free text, e.g. 2025-11-13, 13/11/2025 or Nov 13, 2025")
    # Spreadsheet imports may send an Excel day fraction instead of text
    appointment_time: Optional[Union[str, float]] = Field(None, description="e.g. 2:30 PM or 0.604166")
    building_name: Optional[str] = Field(None, max_length=255)
    estimated_duration: Optional[int] = Field(60, ge=0, description="Minutes")
    priority: Optional[str] = Field("medium")
    status: Optional[str] = Field("pending")
    reschedule_reason: Optional[str] = None
    rescheduled_date: Optional[datetime] = None
    rescheduled_time: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = None
    
    @validator('status')
    def validate_status(cls, v):
        return _check_choice(v, ORDER_STATUSES, 'Status')
    
    @validator('priority')
    def validate_priority(cls, v):
        return _check_choice(v, PRIORITIES, 'Priority')
    
    @validator('reschedule_reason')
    def validate_reschedule_reason(cls, v):
        return _check_choice(v, RESCHEDULE_REASONS, 'Reschedule reason')

class OrderCreate(OrderBase):
    """Schema for creating a new order"""
    pass

class OrderUpdate(BaseModel):
    """Schema for a partial order update; only the fields sent are applied"""
    order_number: Optional[str] = Field(None, max_length=100)
    ticket_number: Optional[str] = Field(None, max_length=100)
    service_number: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_email: Optional[str] = Field(None, max_length=320)
    service_type: Optional[str] = Field(None, max_length=100)
    sales_modi_type: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    appointment_date: Optional[str] = Field(None, max_length=50)
    appointment_time: Optional[str] = Field(None, max_length=50)
    building_name: Optional[str] = Field(None, max_length=255)
    estimated_duration: Optional[int] = Field(None, ge=0)
    priority: Optional[str] = None
    status: Optional[str] = None
    reschedule_reason: Optional[str] = None
    rescheduled_date: Optional[datetime] = None
    rescheduled_time: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = None
    
    @validator('status')
    def validate_status(cls, v):
        return _check_choice(v, ORDER_STATUSES, 'Status')
    
    @validator('priority')
    def validate_priority(cls, v):
        return _check_choice(v, PRIORITIES, 'Priority')
    
    @validator('reschedule_reason')
    def validate_reschedule_reason(cls, v):
        return _check_choice(v, RESCHEDULE_REASONS, 'Reschedule reason')

class OrderResponse(BaseModel):
    """Schema for order responses"""
    id: int
    order_number: Optional[str]
    ticket_number: Optional[str]
    service_number: str
    customer_name: str
    customer_phone: Optional[str]
    customer_email: Optional[str]
    service_type: Optional[str]
    sales_modi_type: Optional[str]
    address: Optional[str]
    appointment_date: Optional[str]
    appointment_time: Optional[str]
    building_name: Optional[str]
    estimated_duration: int
    priority: str
    status: str
    reschedule_reason: Optional[str]
    rescheduled_date: Optional[datetime]
    rescheduled_time: Optional[str]
    notes: Optional[str]
    docket_file_url: Optional[str]
    docket_file_name: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True

class OrderHistoryResponse(BaseModel):
    id: int
    order_id: int
    user_id: Optional[int]
    user_name: Optional[str]
    action: str
    field_name: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]
    created_at: Optional[datetime]
    
    class Config:
        from_attributes = True

class BulkOrderCreate(BaseModel):
    """Schema for spreadsheet imports"""
    orders: list[OrderCreate] = Field(..., min_length=1)

class BulkUpsertResponse(BaseModel):
    created: int
    updated: int
    skipped: int

class DocketUpload(BaseModel):
    """Docket file sent as base64"""
    file_data: str = Field(..., min_length=1, description="Base64 encoded file contents")
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: Optional[str] = Field(None, max_length=100, description="MIME type")
    
    @validator('file_name')
    def validate_file_name(cls, v):
        name = v.replace('\\', '/').split('/')[-1].strip()
        if not name:
            raise ValueError('File name is required')
        return name

class DocketUploadResponse(BaseModel):
    url: str
    file_name: str
    order: OrderResponse

class ClearAllResponse(BaseModel):
    orders_deleted: int
    assignments_deleted: int
