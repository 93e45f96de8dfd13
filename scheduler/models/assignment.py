"""
Assignment model binding one order to one installer for one slot
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, Index, text
from sqlalchemy.sql import func
from scheduler.database import Base

ASSIGNMENT_STATUSES = ["scheduled", "in_progress", "completed", "cancelled"]

ACTIVE_ASSIGNMENT = text("status != 'cancelled'")

class Assignment(Base):
    """Assignment entity model"""
    __tablename__ = "assignments"
    __table_args__ = (
        # One active assignment per (installer, date, start) slot
        Index(
            "uq_assignment_slot",
            "installer_id", "scheduled_date", "scheduled_start_time",
            unique=True,
            sqlite_where=ACTIVE_ASSIGNMENT,
            postgresql_where=ACTIVE_ASSIGNMENT,
        ),
        # One active assignment per order
        Index(
            "uq_assignment_order",
            "order_id",
            unique=True,
            sqlite_where=ACTIVE_ASSIGNMENT,
            postgresql_where=ACTIVE_ASSIGNMENT,
        ),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    installer_id = Column(Integer, ForeignKey("installers.id"), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_start_time = Column(String(5), nullable=False)  # HH:MM
    scheduled_end_time = Column(String(5), nullable=False)  # HH:MM
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)
    status = Column(String(20), default="scheduled", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    def __repr__(self):
        return (
            f"<Assignment(id={self.id}, order_id={self.order_id}, installer_id={self.installer_id}, "
            f"date={self.scheduled_date}, start='{self.scheduled_start_time}')>"
        )
