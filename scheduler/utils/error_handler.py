"""
Error taxonomy and standardized error responses
"""

import uuid
import logging
from typing import Optional
from datetime import datetime
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

class ErrorContext:
    """Context object for tracking error information across the request lifecycle"""
    
    def __init__(self, request: Request):
        self.request_id = str(uuid.uuid4())
        self.request = request
        self.endpoint = str(request.url.path)
        self.method = request.method
        self.client_ip = self._get_client_ip()
        self.user_agent = request.headers.get("user-agent")
        self.timestamp = datetime.utcnow()
    
    def _get_client_ip(self) -> Optional[str]:
        """Extract client IP from request headers"""
        if "x-forwarded-for" in self.request.headers:
            return self.request.headers["x-forwarded-for"].split(",")[0].strip()
        elif "x-real-ip" in self.request.headers:
            return self.request.headers["x-real-ip"]
        elif self.request.client:
            return self.request.client.host
        return None

class SchedulerError(Exception):
    """Base class for errors raised by the scheduling services"""
    status_code = 500
    error_code = "SCHEDULER_ERROR"
    
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

class ValidationError(SchedulerError):
    """Input rejected before any write"""
    status_code = 400
    error_code = "VALIDATION_ERROR"

class NotFoundError(SchedulerError):
    """Referenced order, installer, assignment, note or user does not exist"""
    status_code = 404
    error_code = "NOT_FOUND"

class ConflictError(SchedulerError):
    """Slot already occupied or order already assigned"""
    status_code = 409
    error_code = "CONFLICT"

class AuthorizationError(SchedulerError):
    """Caller lacks the capability for the operation"""
    status_code = 403
    error_code = "FORBIDDEN"

class DatabaseError(SchedulerError):
    """The store refused a write for a reason other than a duplicate"""
    status_code = 500
    error_code = "DATABASE_ERROR"

def translate_integrity_error(error: IntegrityError, conflict_message: str, error_code: Optional[str] = None) -> SchedulerError:
    """Unique index violations are conflicts; any other constraint failure is a database error"""
    if "unique" in str(error.orig).lower():
        return ConflictError(conflict_message, error_code=error_code)
    logger.error(f"Database integrity error: {error.orig}")
    return DatabaseError("A database error occurred. Please try again later.")

class ErrorHandler:
    """Centralized error handling service"""
    
    @staticmethod
    def create_error_response(
        error_context: ErrorContext,
        error: Exception,
        status_code: int = 500
    ) -> JSONResponse:
        """Create a standardized error response"""
        
        error_data = {
            "error": {
                "code": ErrorHandler._get_error_code(error),
                "message": ErrorHandler._get_user_friendly_message(error),
                "request_id": error_context.request_id,
                "timestamp": error_context.timestamp.isoformat(),
                "endpoint": error_context.endpoint,
                "method": error_context.method
            }
        }
        
        ErrorHandler._log_error(error_context, error, status_code)
        
        return JSONResponse(
            status_code=status_code,
            content=error_data
        )
    
    @staticmethod
    def _get_error_code(error: Exception) -> str:
        """Generate appropriate error codes based on exception type"""
        if isinstance(error, HTTPException):
            return f"HTTP_{error.status_code}"
        elif isinstance(error, SchedulerError):
            return error.error_code
        elif isinstance(error, ValueError):
            return "VALIDATION_ERROR"
        else:
            return "INTERNAL_ERROR"
    
    @staticmethod
    def _get_user_friendly_message(error: Exception) -> str:
        """Generate user-friendly error messages"""
        if isinstance(error, HTTPException):
            return error.detail
        elif isinstance(error, SchedulerError):
            return error.message
        elif isinstance(error, ValueError):
            return "Invalid input provided. Please check your data and try again."
        else:
            return "An unexpected error occurred. Please try again later."
    
    @staticmethod
    def _log_error(error_context: ErrorContext, error: Exception, status_code: int):
        """Log error with request context; client errors are warnings"""
        log = logger.warning if status_code < 500 else logger.error
        log(
            f"Error {error_context.request_id}: {type(error).__name__} in {error_context.method} {error_context.endpoint}: {error}",
            extra={
                "request_id": error_context.request_id,
                "endpoint": error_context.endpoint,
                "method": error_context.method,
                "status_code": status_code,
                "client_ip": error_context.client_ip,
                "user_agent": error_context.user_agent,
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        )

async def scheduler_error_handler(request: Request, exc: SchedulerError) -> JSONResponse:
    """FastAPI exception handler for the domain error taxonomy"""
    return ErrorHandler.create_error_response(ErrorContext(request), exc, exc.status_code)
