"""
Configurable schedule time slot endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
import logging

from scheduler.database import get_db
from scheduler.schemas.time_slot import TimeSlotCreate, TimeSlotUpdate, TimeSlotReorder, TimeSlotResponse
from scheduler.services.time_slot_service import TimeSlotService
from scheduler.auth.auth_handler import RequestContext, admin_required, user_required
from scheduler.utils.error_handler import SchedulerError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.get("/", response_model=list[TimeSlotResponse])
@limiter.limit("60/minute")
async def get_time_slots(
    request: Request,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return TimeSlotService(db).list_slots()
        
    except Exception as e:
        logger.error(f"Failed to get time slots: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve time slots")

@router.get("/active", response_model=list[TimeSlotResponse])
@limiter.limit("60/minute")
async def get_active_time_slots(
    request: Request,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return TimeSlotService(db).list_slots(active_only=True)
        
    except Exception as e:
        logger.error(f"Failed to get active time slots: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve time slots")

@router.post("/", response_model=TimeSlotResponse, status_code=201)
@limiter.limit("30/minute")
async def create_time_slot(
    request: Request,
    slot: TimeSlotCreate,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    try:
        return TimeSlotService(db).create_slot(slot.time, slot.sort_order, slot.is_active)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to create time slot: {e}")
        raise HTTPException(status_code=500, detail="Failed to create time slot")

@router.post("/reorder", response_model=list[TimeSlotResponse])
@limiter.limit("30/minute")
async def reorder_time_slots(
    request: Request,
    payload: TimeSlotReorder,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    try:
        return TimeSlotService(db).reorder(payload.slot_ids)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to reorder time slots: {e}")
        raise HTTPException(status_code=500, detail="Failed to reorder time slots")

@router.post("/seed")
@limiter.limit("5/minute")
async def seed_time_slots(
    request: Request,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    """Insert the default slots if none are configured"""
    try:
        added = TimeSlotService(db).seed_defaults()
        return {"seeded": added}
        
    except Exception as e:
        logger.error(f"Failed to seed time slots: {e}")
        raise HTTPException(status_code=500, detail="Failed to seed time slots")

@router.put("/{slot_id}", response_model=TimeSlotResponse)
@limiter.limit("30/minute")
async def update_time_slot(
    request: Request,
    slot_id: int,
    slot_update: TimeSlotUpdate,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    try:
        return TimeSlotService(db).update_slot(slot_id, slot_update.dict(exclude_unset=True))
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to update time slot {slot_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update time slot")

@router.delete("/{slot_id}")
@limiter.limit("30/minute")
async def delete_time_slot(
    request: Request,
    slot_id: int,
    current_user: RequestContext = Depends(admin_required),
    db: Session = Depends(get_db)
):
    try:
        TimeSlotService(db).delete_slot(slot_id)
        return {"success": True, "message": "Time slot deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete time slot {slot_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete time slot")
