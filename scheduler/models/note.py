"""
Daily note model (remarks, incidents, complaints, follow-ups)
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from scheduler.database import Base

NOTE_TYPES = ["general", "reschedule", "follow_up", "incident", "complaint"]
NOTE_STATUSES = ["open", "in_progress", "resolved", "closed"]

class Note(Base):
    """Note entity model, linked to orders by value so it survives order deletion"""
    __tablename__ = "notes"
    
    id = Column(Integer, primary_key=True, index=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    service_number = Column(String(100), nullable=True, index=True)
    order_number = Column(String(100), nullable=True)
    customer_name = Column(String(255), nullable=True)
    note_type = Column(String(20), default="general", nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(String(10), default="medium", nullable=False)
    status = Column(String(20), default="open", nullable=False)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    def __repr__(self):
        return f"<Note(id={self.id}, date='{self.date}', type='{self.note_type}', status='{self.status}')>"
