"""
Configurable time slots shown on the schedule grid
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from scheduler.database import Base

DEFAULT_TIME_SLOTS = [
    "9:00 AM", "10:00 AM", "11:00 AM", "11:30 AM", "1:00 PM",
    "2:30 PM", "3:00 PM", "4:00 PM", "6:00 PM",
]

class TimeSlot(Base):
    """Time slot configuration model"""
    __tablename__ = "time_slots"
    
    id = Column(Integer, primary_key=True, index=True)
    time = Column(String(20), unique=True, nullable=False)  # e.g. "9:00 AM"
    sort_order = Column(Integer, nullable=False)
    is_active = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    def __repr__(self):
        return f"<TimeSlot(id={self.id}, time='{self.time}', sort_order={self.sort_order})>"
