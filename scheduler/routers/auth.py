"""
Authentication endpoints for signup, login and admin user management
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import timedelta
from typing import Optional
import logging

from scheduler.config import ACCESS_TOKEN_EXPIRE_MINUTES
from scheduler.database import get_db
from scheduler.schemas.activity_log import ActivityLogResponse
from scheduler.schemas.user import UserCreate, UserLogin, RoleUpdate, UserResponse, TokenResponse
from scheduler.services.user_service import UserService
from scheduler.auth.auth_handler import AuthHandler, RequestContext, get_current_user, admin_required
from scheduler.services.activity_logger import ActivityLogger
from scheduler.utils.error_handler import SchedulerError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.post("/signup", response_model=UserResponse, status_code=201)
@limiter.limit("5/minute")  # Strict limit to prevent spam registrations
async def signup(
    request: Request,
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """Register a new user account"""
    try:
        user_service = UserService(db)
        new_user = await user_service.create_user(user_data)
        
        activity_logger = ActivityLogger(db)
        await activity_logger.log_request(request, 201, user_id=new_user.id)
        
        logger.info(f"New user registered: {new_user.username}")
        return new_user
        
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Signup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user account"
        )

@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")  # Prevent brute force attacks
async def login(
    request: Request,
    login_data: UserLogin,
    db: Session = Depends(get_db)
):
    """Authenticate user and return access token"""
    try:
        user_service = UserService(db)
        auth_handler = AuthHandler()
        activity_logger = ActivityLogger(db)
        
        user = await user_service.authenticate_user(login_data)
        
        if not user:
            await activity_logger.log_request(
                request, 401,
                error_message=f"Failed login attempt for: {login_data.username_or_email}"
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username/email or password"
            )
        
        token_data = {
            "sub": str(user.id),
            "username": user.username,
            "name": user.display_name,
            "role": user.role,
            "email": user.email
        }
        access_token = auth_handler.create_access_token(
            data=token_data,
            expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        
        await activity_logger.log_request(request, 200, user_id=user.id)
        
        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.from_orm(user)
        )
        
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )

@router.get("/me", response_model=UserResponse)
@limiter.limit("30/minute")
async def get_current_user_info(
    request: Request,
    current_user: RequestContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information"""
    try:
        user = UserService(db).get_user(current_user.user_id)
        return UserResponse.from_orm(user)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get current user info: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve user information"
        )

@router.post("/logout")
@limiter.limit("30/minute")
async def logout(
    request: Request,
    current_user: RequestContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Logout user (client should discard token)"""
    activity_logger = ActivityLogger(db)
    await activity_logger.log_request(request, 200, user_id=current_user.user_id)
    
    logger.info(f"User logged out: {current_user.user_name}")
    return {"message": "Successfully logged out"}

# Admin endpoints
@router.get("/users", response_model=list[UserResponse])
@limiter.limit("20/minute")
async def get_users(
    request: Request,
    role: Optional[str] = None,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """List user accounts (Admin only)"""
    try:
        return UserService(db).list_users(role)
        
    except Exception as e:
        logger.error(f"Failed to get users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve users"
        )

@router.put("/users/{user_id}/role", response_model=UserResponse)
@limiter.limit("10/minute")
async def change_user_role(
    request: Request,
    user_id: int,
    role_data: RoleUpdate,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Change a user's role (Admin only)"""
    try:
        user = UserService(db).change_role(user_id, role_data.role, current_user)
        
        activity_logger = ActivityLogger(db)
        await activity_logger.log_request(
            request, 200, user_id=current_user.user_id,
            details={"target_user_id": user_id, "role": role_data.role}
        )
        return user
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to change role of user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change user role"
        )

@router.delete("/users/{user_id}")
@limiter.limit("10/minute")
async def delete_user(
    request: Request,
    user_id: int,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Delete a user account (Admin only)"""
    try:
        UserService(db).delete_user(user_id, current_user)
        
        activity_logger = ActivityLogger(db)
        await activity_logger.log_request(
            request, 200, user_id=current_user.user_id,
            details={"deleted_user_id": user_id}
        )
        return {"message": "User deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete user"
        )

@router.get("/activity", response_model=list[ActivityLogResponse])
@limiter.limit("20/minute")
async def get_activity(
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Recent admin and destructive API calls, newest first (Admin only)"""
    try:
        return ActivityLogger(db).get_recent_activities(limit)
        
    except Exception as e:
        logger.error(f"Failed to get activity log: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve activity log"
        )
