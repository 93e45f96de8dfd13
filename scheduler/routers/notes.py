"""
Daily notes endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import date
import logging

from scheduler.database import get_db
from scheduler.schemas.note import NoteCreate, NoteUpdate, NoteResponse
from scheduler.services.note_service import NoteService
from scheduler.auth.auth_handler import RequestContext, supervisor_required, user_required
from scheduler.utils.error_handler import SchedulerError, ValidationError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.get("/", response_model=list[NoteResponse])
@limiter.limit("60/minute")
async def get_notes(
    request: Request,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return NoteService(db).list_notes()
        
    except Exception as e:
        logger.error(f"Failed to get notes: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve notes")

@router.get("/by-date/{day}", response_model=list[NoteResponse])
@limiter.limit("60/minute")
async def get_notes_by_date(
    request: Request,
    day: date,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return NoteService(db).by_date(day.isoformat())
        
    except Exception as e:
        logger.error(f"Failed to get notes for {day}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve notes")

@router.get("/by-service-number/{service_number}", response_model=list[NoteResponse])
@limiter.limit("60/minute")
async def get_notes_by_service_number(
    request: Request,
    service_number: str,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return NoteService(db).by_service_number(service_number)
        
    except Exception as e:
        logger.error(f"Failed to get notes for service {service_number}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve notes")

@router.get("/range", response_model=list[NoteResponse])
@limiter.limit("60/minute")
async def get_notes_by_date_range(
    request: Request,
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        return NoteService(db).by_date_range(start_date.isoformat(), end_date.isoformat())
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get notes between {start_date} and {end_date}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve notes")

@router.post("/", response_model=NoteResponse, status_code=201)
@limiter.limit("30/minute")
async def create_note(
    request: Request,
    note: NoteCreate,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Create a note; the author is taken from the caller"""
    try:
        return NoteService(db).create_note(note.dict(), created_by=current_user.user_name)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to create note: {e}")
        raise HTTPException(status_code=500, detail="Failed to create note")

@router.get("/{note_id}", response_model=NoteResponse)
@limiter.limit("60/minute")
async def get_note(
    request: Request,
    note_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return NoteService(db).get_note(note_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get note {note_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve note")

@router.put("/{note_id}", response_model=NoteResponse)
@limiter.limit("30/minute")
async def update_note(
    request: Request,
    note_id: int,
    note_update: NoteUpdate,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return NoteService(db).update_note(note_id, note_update.dict(exclude_unset=True))
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to update note {note_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update note")

@router.delete("/{note_id}")
@limiter.limit("30/minute")
async def delete_note(
    request: Request,
    note_id: int,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    try:
        NoteService(db).delete_note(note_id)
        return {"success": True, "message": "Note deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete note {note_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete note")
