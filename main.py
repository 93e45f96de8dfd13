"""
Service Order Scheduling API
Orders, installers and the assignments that put one onto the other's calendar
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import uvicorn
from contextlib import asynccontextmanager
import logging
import traceback
import uuid
from datetime import datetime

from scheduler import config
from scheduler.database import engine, Base, SessionLocal
from scheduler.models import activity_log, assignment, history, installer, note, order, time_slot, user  # noqa: F401 (register tables)
from scheduler.routers import assignment_history, assignments, auth, installers, notes, orders, time_slots
from scheduler.services.activity_logger import ActivityLogger
from scheduler.utils.error_handler import SchedulerError, scheduler_error_handler

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Rate limiting
limiter = Limiter(key_func=get_remote_address)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("Starting Scheduling API...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")
    
    yield
    
    logger.info("Shutting down Scheduling API...")

app = FastAPI(
    title="Service Order Scheduling API",
    description="Schedules service orders onto installer time slots, with a full audit trail",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(SchedulerError, scheduler_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])
app.include_router(installers.router, prefix="/api/v1/installers", tags=["installers"])
app.include_router(assignments.router, prefix="/api/v1/assignments", tags=["assignments"])
app.include_router(assignment_history.router, prefix="/api/v1/assignment-history", tags=["assignment history"])
app.include_router(notes.router, prefix="/api/v1/notes", tags=["notes"])
app.include_router(time_slots.router, prefix="/api/v1/time-slots", tags=["time slots"])

# Uploaded dockets
app.mount("/files/local", StaticFiles(directory=config.STORAGE_DIR, check_dir=False), name="files")

@app.get("/")
@limiter.limit("10/minute")
async def root(request: Request):
    """Root endpoint with API information - publicly accessible"""
    return {
        "message": "Service Order Scheduling API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "timestamp": datetime.utcnow().isoformat()
    }

@app.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors with a tracking id and record them in the activity log"""
    error_id = str(uuid.uuid4())
    
    logger.error(
        f"Unhandled exception {error_id}: {type(exc).__name__} in {request.method} {request.url.path}",
        extra={
            "error_id": error_id,
            "endpoint": str(request.url.path),
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "stack_trace": traceback.format_exc()
        },
        exc_info=True
    )
    
    db = SessionLocal()
    try:
        await ActivityLogger(db).log_request(request, 500, error_message=f"[{error_id}] {str(exc)}")
    finally:
        db.close()
    
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
                "error_id": error_id,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=config.LOG_LEVEL.lower()
    )
