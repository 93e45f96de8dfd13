"""
Append-only audit tables for orders and assignments

Neither table has foreign keys: rows must outlive the orders, installers
and assignments they describe, so names are copied in at write time.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from scheduler.database import Base

ORDER_HISTORY_ACTIONS = ["created", "updated", "status_changed", "deleted"]
ASSIGNMENT_HISTORY_ACTIONS = ["created", "updated", "deleted", "reassigned"]

class OrderHistory(Base):
    """One row per order field change"""
    __tablename__ = "order_history"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)  # null means system-initiated
    user_name = Column(String(255), nullable=True)
    action = Column(String(20), nullable=False)
    field_name = Column(String(100), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<OrderHistory(id={self.id}, order_id={self.order_id}, action='{self.action}', field='{self.field_name}')>"

class AssignmentHistory(Base):
    """One row per assignment lifecycle event"""
    __tablename__ = "assignment_history"
    
    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, nullable=True, index=True)
    order_id = Column(Integer, nullable=False, index=True)
    order_number = Column(String(100), nullable=True, index=True)
    installer_id = Column(Integer, nullable=False, index=True)
    installer_name = Column(String(255), nullable=True)
    scheduled_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    scheduled_start_time = Column(String(5), nullable=True)
    scheduled_end_time = Column(String(5), nullable=True)
    action = Column(String(20), nullable=False)
    assigned_by = Column(Integer, nullable=True)
    assigned_by_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<AssignmentHistory(id={self.id}, order_id={self.order_id}, action='{self.action}')>"
