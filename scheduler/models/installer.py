"""
Installer (service technician) model
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from scheduler.database import Base

class Installer(Base):
    """Installer entity model"""
    __tablename__ = "installers"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=True)
    phone = Column(String(50), nullable=True)
    skills = Column(Text, nullable=True)
    is_active = Column(Integer, default=1, nullable=False)  # 1 = active, 0 = disabled
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    def __repr__(self):
        return f"<Installer(id={self.id}, name='{self.name}', is_active={self.is_active})>"
