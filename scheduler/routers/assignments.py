"""
Assignment endpoints: scheduling orders onto installer slots
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
from scheduler.schemas.assignment import (
    AssignmentCreate, AssignmentUpdate, AssignmentResponse, ReassignRequest,
    QuickAssignRequest, RouteStop, DailyGridResponse,
)
from scheduler.services.assignment_service import AssignmentService
from scheduler.services.export_service import XLSX_MEDIA_TYPE, export_schedule
from scheduler.auth.auth_handler import RequestContext, supervisor_required, user_required
from scheduler.utils.error_handler import SchedulerError, ValidationError

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)

router = APIRouter()

@router.get("/", response_model=list[AssignmentResponse])
@limiter.limit("60/minute")
async def get_assignments(
    request: Request,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    installer_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    include_cancelled: bool = Query(True),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """List assignments, optionally by date range, installer or order"""
    try:
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        return AssignmentService(db).list_assignments(
            start_date, end_date, installer_id, order_id, include_cancelled
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get assignments: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve assignments")

@router.get("/export")
@limiter.limit("10/minute")
async def export_schedule_xlsx(
    request: Request,
    start_date: date = Query(...),
    end_date: date = Query(...),
    installer_id: Optional[int] = Query(None),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Download the schedule for a date range as an Excel workbook"""
    try:
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        assignments = AssignmentService(db).list_assignments(
            start_date, end_date, installer_id, include_cancelled=False
        )
        filename = f"schedule_{start_date.isoformat()}_{end_date.isoformat()}.xlsx"
        return Response(
            content=export_schedule(db, assignments),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to export schedule: {e}")
        raise HTTPException(status_code=500, detail="Failed to export schedule")

@router.get("/grid", response_model=DailyGridResponse)
@limiter.limit("60/minute")
async def get_daily_grid(
    request: Request,
    day: date = Query(..., alias="date"),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """Time slots of a day with each active installer's assignments by start time"""
    try:
        return AssignmentService(db).daily_grid(day)
        
    except Exception as e:
        logger.error(f"Failed to build schedule grid for {day}: {e}")
        raise HTTPException(status_code=500, detail="Failed to build schedule grid")

@router.get("/route", response_model=list[RouteStop])
@limiter.limit("60/minute")
async def get_route(
    request: Request,
    installer_id: int = Query(...),
    day: date = Query(..., alias="date"),
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    """An installer's stops for a day in visiting order"""
    try:
        rows = AssignmentService(db).route_for(installer_id, day)
        return [
            {"sequence": index, "assignment": assignment, "order": order}
            for index, (assignment, order) in enumerate(rows, start=1)
        ]
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to build route for installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to build route")

@router.get("/by-installer/{installer_id}", response_model=list[AssignmentResponse])
@limiter.limit("60/minute")
async def get_assignments_by_installer(
    request: Request,
    installer_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return AssignmentService(db).list_assignments(installer_id=installer_id)
        
    except Exception as e:
        logger.error(f"Failed to get assignments for installer {installer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve assignments")

@router.get("/by-order/{order_id}", response_model=list[AssignmentResponse])
@limiter.limit("60/minute")
async def get_assignments_by_order(
    request: Request,
    order_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return AssignmentService(db).list_assignments(order_id=order_id)
        
    except Exception as e:
        logger.error(f"Failed to get assignments for order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve assignments")

@router.post("/", response_model=AssignmentResponse, status_code=201)
@limiter.limit("60/minute")
async def create_assignment(
    request: Request,
    assignment: AssignmentCreate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Assign an order to an empty installer slot"""
    try:
        return await AssignmentService(db).create_assignment(
            order_id=assignment.order_id,
            installer_id=assignment.installer_id,
            scheduled_date=assignment.scheduled_date,
            start_time=assignment.scheduled_start_time,
            end_time=assignment.scheduled_end_time,
            notes=assignment.notes,
            context=current_user,
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to create assignment: {e}")
        raise HTTPException(status_code=500, detail="Failed to create assignment")

@router.post("/quick-assign", response_model=AssignmentResponse, status_code=201)
@limiter.limit("60/minute")
async def quick_assign(
    request: Request,
    payload: QuickAssignRequest,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Assign an order at its own appointment date and time"""
    try:
        return await AssignmentService(db).quick_assign(payload.order_id, payload.installer_id, current_user)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to quick assign order {payload.order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to assign order")

@router.get("/{assignment_id}", response_model=AssignmentResponse)
@limiter.limit("60/minute")
async def get_assignment(
    request: Request,
    assignment_id: int,
    current_user: RequestContext = Depends(user_required),
    db: Session = Depends(get_db)
):
    try:
        return AssignmentService(db).get_assignment(assignment_id)
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to get assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve assignment")

@router.put("/{assignment_id}", response_model=AssignmentResponse)
@limiter.limit("60/minute")
async def update_assignment(
    request: Request,
    assignment_id: int,
    assignment_update: AssignmentUpdate,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Change status, notes or schedule of an assignment in place"""
    try:
        return await AssignmentService(db).update_assignment(
            assignment_id, assignment_update.dict(exclude_unset=True), current_user
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to update assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update assignment")

@router.delete("/{assignment_id}")
@limiter.limit("60/minute")
async def delete_assignment(
    request: Request,
    assignment_id: int,
    revert_order_status: bool = Query(True, description="Set the order back to pending"),
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Unassign an order"""
    try:
        await AssignmentService(db).delete_assignment(assignment_id, current_user, revert_order_status)
        return {"success": True, "message": "Assignment deleted successfully"}
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete assignment")

@router.post("/{assignment_id}/reassign", response_model=AssignmentResponse)
@limiter.limit("60/minute")
async def reassign(
    request: Request,
    assignment_id: int,
    payload: ReassignRequest,
    current_user: RequestContext = Depends(supervisor_required),
    db: Session = Depends(get_db)
):
    """Move an assignment to another installer and/or slot in one step"""
    try:
        return await AssignmentService(db).reassign(
            assignment_id,
            payload.installer_id,
            scheduled_date=payload.scheduled_date,
            start_time=payload.scheduled_start_time,
            end_time=payload.scheduled_end_time,
            notes=payload.notes,
            context=current_user,
        )
        
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Failed to reassign assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to reassign")
