"""
Installer roster endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import date
from typing import Optional
import logging

from scheduler.database import get_db
from scheduler.schemas.installer import (
    InstallerCreate, InstallerUpdate, InstallerResponse, BulkInstallerCreate, LinkUserRequest,
)
from scheduler.schemas.assignment import AssignmentResponse
from scheduler.services.assignment_service import AssignmentService
from scheduler.services.installer_service import InstallerService
from scheduler.auth.auth_handler import RequestContext, admin_required, supervisor_required, user_required
from scheduler.utils.error_handler import NotFoundError, SchedulerError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.get("/", response_model=list[InstallerResponse])
@limiter.limit("60/minute")
async def get_installers(
    request: Request,
    active_only: bool = Query(False, description="Only installers that can take assignments"),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return InstallerService(db).list_installers(active_only)
        
    except Exception as e:
        logger.error(f"Failed to get installers: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve installers")

@router.get("/me", response_model=InstallerResponse)
@limiter.limit("60/minute")
async def get_my_installer(
    request: Request,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """The installer record linked to the caller's account"""
    try:
        installer = InstallerService(db).get_by_user(current_user.user_id)
        if not installer:
            raise NotFoundError("No installer is linked to your account")
        return installer
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get installer for user {current_user.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve installer")

@router.post("/", response_model=InstallerResponse, status_code=201)
@limiter.limit("30/minute")
async def create_installer(
    request: Request,
    installer: InstallerCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    try:
        return InstallerService(db).create_installer(installer.dict())
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to create installer: {e}")
        raise HTTPException(status_code=500, detail="Failed to create installer")

@router.post("/bulk", response_model=list[InstallerResponse], status_code=201)
@limiter.limit("10/minute")
async def bulk_create_installers(
    request: Request,
    payload: BulkInstallerCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    try:
        return InstallerService(db).bulk_create([i.dict() for i in payload.installers])
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to bulk create installers: {e}")
        raise HTTPException(status_code=500, detail="Failed to import installers")

@router.get("/{installer_id}", response_model=InstallerResponse)
@limiter.limit("60/minute")
async def get_installer(
    request: Request,
    installer_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return InstallerService(db).get_installer(installer_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve installer")

@router.put("/{installer_id}", response_model=InstallerResponse)
@limiter.limit("30/minute")
async def update_installer(
    request: Request,
    installer_id: int,
    installer_update: InstallerUpdate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    try:
        return InstallerService(db).update_installer(installer_id, installer_update.dict(exclude_unset=True))
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to update installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update installer")

@router.delete("/{installer_id}")
@limiter.limit("30/minute")
async def delete_installer(
    request: Request,
    installer_id: int,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    try:
        InstallerService(db).delete_installer(installer_id)
        return {"success": True, "message": "Installer deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete installer")

@router.post("/{installer_id}/user", response_model=InstallerResponse)
@limiter.limit("30/minute")
async def link_installer_user(
    request: Request,
    installer_id: int,
    link: LinkUserRequest,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Link a user account to an installer (Admin only)"""
    try:
        return InstallerService(db).link_user(installer_id, link.user_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to link user to installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to link user")

@router.delete("/{installer_id}/user", response_model=InstallerResponse)
@limiter.limit("30/minute")
async def unlink_installer_user(
    request: Request,
    installer_id: int,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Remove the user link from an installer (Admin only)"""
    try:
        return InstallerService(db).unlink_user(installer_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to unlink user from installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to unlink user")

@router.get("/{installer_id}/schedule", response_model=list[AssignmentResponse])
@limiter.limit("60/minute")
async def get_installer_schedule(
    request: Request,
    installer_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """An installer's active assignments, optionally within a date range"""
    try:
        InstallerService(db).get_installer(installer_id)
        return AssignmentService(db).list_assignments(
            start_date, end_date, installer_id=installer_id, include_cancelled=False
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get schedule for installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve schedule")
