"""
User service for authentication and user management
"""

from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from datetime import datetime
from typing import Optional
import logging

from scheduler.models.installer import Installer
from scheduler.models.user import User
from scheduler.schemas.user import UserCreate, UserLogin
from scheduler.auth.auth_handler import AuthHandler, RequestContext
from scheduler.utils.error_handler import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class UserService:
    """Service for user management operations"""
    
    def __init__(self, db: Session):
        self.db = db
        self.auth_handler = AuthHandler()
    
    async def create_user(self, user_data: UserCreate) -> User:
        """Create a new user account; the very first account becomes admin"""
        existing_user = self.db.query(User).filter(
            or_(
                User.username == user_data.username.lower(),
                User.email == user_data.email.lower()
            )
        ).first()
        
        if existing_user:
            if existing_user.username == user_data.username.lower():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Username already registered"
                )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )
        
        role = "admin" if self.db.query(User).count() == 0 else "user"
        db_user = User(
            username=user_data.username.lower(),
            email=user_data.email.lower(),
            hashed_password=self.auth_handler.get_password_hash(user_data.password),
            name=user_data.name,
            role=role,
            is_active=True,
        )
        
        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        
        logger.info(f"Created new user: {db_user.username} ({db_user.role})")
        return db_user
    
    async def authenticate_user(self, login_data: UserLogin) -> Optional[User]:
        """Authenticate user credentials"""
        user = self.db.query(User).filter(
            or_(
                User.username == login_data.username_or_email.lower(),
                User.email == login_data.username_or_email.lower()
            )
        ).first()
        
        if not user:
            logger.warning(f"Login attempt with non-existent user: {login_data.username_or_email}")
            return None
        
        if not user.is_active:
            logger.warning(f"Login attempt with inactive user: {user.username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )
        
        if not self.auth_handler.verify_password(login_data.password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {user.username}")
            return None
        
        user.last_signed_in = datetime.utcnow()
        self.db.commit()
        
        logger.info(f"Successful login for user: {user.username}")
        return user
    
    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user
    
    def list_users(self, role: Optional[str] = None) -> list[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()
    
    def change_role(self, user_id: int, role: str, context: RequestContext) -> User:
        """Admin-only role change; admins cannot demote themselves"""
        if not context.can("users:manage"):
            raise AuthorizationError("Only administrators can manage users")
        user = self.get_user(user_id)
        if user.id == context.user_id and role != user.role:
            raise ValidationError("You cannot change your own role")
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Admin {context.user_id} set role of user {user_id} to {role}")
        return user
    
    def delete_user(self, user_id: int, context: RequestContext) -> None:
        """Admin-only delete; linked installers are unlinked, not removed"""
        if not context.can("users:manage"):
            raise AuthorizationError("Only administrators can manage users")
        if user_id == context.user_id:
            raise ValidationError("You cannot delete your own account")
        user = self.get_user(user_id)
        self.db.query(Installer).filter(Installer.user_id == user_id).update(
            {Installer.user_id: None}, synchronize_session=False
        )
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Admin {context.user_id} deleted user {user_id}")
