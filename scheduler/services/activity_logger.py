"""
Activity logging for admin and destructive API calls
"""

from sqlalchemy.orm import Session
from fastapi import Request
from scheduler.models.activity_log import ActivityLog
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)

class ActivityLogger:
    """Service for logging API activity; never fails the calling request"""
    
    def __init__(self, db: Session):
        self.db = db
    
    async def log_activity(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[dict] = None,
        error_message: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """Log an activity to the database with proper error handling"""
        try:
            details_str = None
            if details:
                try:
                    details_str = json.dumps(details, default=str)
                except (TypeError, ValueError):
                    details_str = str(details)
            
            activity_log = ActivityLog(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                user_id=user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details=details_str,
                error_message=error_message
            )
            
            self.db.add(activity_log)
            self.db.commit()
            self.db.refresh(activity_log)
            
            return activity_log
            
        except Exception as e:
            logger.error(f"Failed to log activity: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after activity log failure also failed: {rollback_error}")
            return None
    
    async def log_request(
        self,
        request: Request,
        status_code: int,
        user_id: Optional[int] = None,
        details: Optional[dict] = None,
        error_message: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """Log an activity using the endpoint, client and user agent of a request"""
        return await self.log_activity(
            endpoint=str(request.url.path),
            method=request.method,
            status_code=status_code,
            user_id=user_id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            details=details,
            error_message=error_message
        )
    
    def get_recent_activities(self, limit: int = 100) -> list[ActivityLog]:
        """Get recent activities"""
        return (
            self.db.query(ActivityLog)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .all()
        )
