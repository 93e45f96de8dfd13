"""
User model for authentication and authorization
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from scheduler.database import Base

USER_ROLES = ["user", "supervisor", "admin"]

class User(Base):
    """User account; an installer may be linked to one"""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(320), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(20), default="user", nullable=False)  # user, supervisor, admin
    is_active = Column(Boolean, default=True, nullable=False)
    last_signed_in = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    @property
    def display_name(self) -> str:
        return self.name or self.username
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
