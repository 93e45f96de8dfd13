"""
Read-only access to the assignment audit trail
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from datetime import date
from typing import Optional
import logging

from scheduler.database import get_db
from scheduler.models.history import ASSIGNMENT_HISTORY_ACTIONS
from scheduler.schemas.assignment import AssignmentHistoryResponse
from scheduler.services.export_service import XLSX_MEDIA_TYPE, export_assignment_history
from scheduler.services.history_service import HistoryService
from scheduler.auth.auth_handler import RequestContext, user_required
from scheduler.utils.error_handler import SchedulerError, ValidationError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

def _query_history(
    db: Session,
    start_date: Optional[date],
    end_date: Optional[date],
    installer_id: Optional[int],
    order_id: Optional[int],
    order_number: Optional[str],
    action: Optional[str],
    limit: Optional[int]
):
    if action and action not in ASSIGNMENT_HISTORY_ACTIONS:
        raise ValidationError(f"Action must be one of: {', '.join(ASSIGNMENT_HISTORY_ACTIONS)}")
    return HistoryService(db).list_assignment_history(
        start_date=start_date,
        end_date=end_date,
        installer_id=installer_id,
        order_id=order_id,
        order_number=order_number,
        action=action,
        limit=limit,
    )

@router.get("/", response_model=list[AssignmentHistoryResponse])
@limiter.limit("60/minute")
async def list_assignment_history(
    request: Request,
    start_date: Optional[date] = Query(None, description="Scheduled on or after"),
    end_date: Optional[date] = Query(None, description="Scheduled on or before"),
    installer_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    order_number: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=5000),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Assignment events, newest first"""
    try:
        return _query_history(db, start_date, end_date, installer_id, order_id, order_number, action, limit)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get assignment history: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve assignment history")

@router.get("/export")
@limiter.limit("10/minute")
async def export_assignment_history_xlsx(
    request: Request,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    installer_id: Optional[int] = Query(None),
    order_number: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        entries = _query_history(db, start_date, end_date, installer_id, None, order_number, action, None)
        return Response(
            content=export_assignment_history(entries),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": 'attachment; filename="assignment_history.xlsx"'}
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to export assignment history: {e}")
        raise HTTPException(status_code=500, detail="Failed to export assignment history")
