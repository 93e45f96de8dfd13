"""
Append-only audit log for orders and assignments

Writes only add rows to the caller's session; they are committed together
with the mutation they describe, so a failed mutation leaves no history
and a committed one always has its history. Nothing here updates or
deletes a history row.
"""

import json
import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from scheduler.auth.auth_handler import RequestContext
from scheduler.models.assignment import Assignment
from scheduler.models.history import OrderHistory, AssignmentHistory
from scheduler.models.installer import Installer
from scheduler.models.order import Order, TRACKED_FIELDS

logger = logging.getLogger(__name__)

def stringify(value: Any) -> Optional[str]:
    """Render a column value the way history rows store it"""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)

def serialize_order(order: Order) -> str:
    """JSON snapshot of an order's tracked fields"""
    snapshot = {field: getattr(order, field) for field in TRACKED_FIELDS}
    return json.dumps(snapshot, default=stringify, sort_keys=True)

class HistoryService:
    """Service for writing and querying order and assignment history"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def record_order_created(self, order: Order, context: Optional[RequestContext] = None) -> OrderHistory:
        entry = OrderHistory(
            order_id=order.id,
            user_id=context.user_id if context else None,
            user_name=context.user_name if context else None,
            action="created",
            field_name=None,
            old_value=None,
            new_value=serialize_order(order),
        )
        self.db.add(entry)
        return entry
    
    def record_order_changes(
        self,
        order_id: int,
        changes: dict[str, tuple[Any, Any]],
        context: Optional[RequestContext] = None
    ) -> list[OrderHistory]:
        """One row per changed field; status changes get their own action"""
        entries = []
        for field_name, (old_value, new_value) in changes.items():
            if stringify(old_value) == stringify(new_value):
                continue
            entries.append(OrderHistory(
                order_id=order_id,
                user_id=context.user_id if context else None,
                user_name=context.user_name if context else None,
                action="status_changed" if field_name == "status" else "updated",
                field_name=field_name,
                old_value=stringify(old_value),
                new_value=stringify(new_value),
            ))
        self.db.add_all(entries)
        return entries
    
    def record_order_deleted(self, order: Order, context: Optional[RequestContext] = None) -> OrderHistory:
        entry = OrderHistory(
            order_id=order.id,
            user_id=context.user_id if context else None,
            user_name=context.user_name if context else None,
            action="deleted",
            field_name=None,
            old_value=serialize_order(order),
            new_value=None,
        )
        self.db.add(entry)
        return entry
    
    def record_assignment_event(
        self,
        action: str,
        assignment: Assignment,
        order: Optional[Order],
        installer: Optional[Installer],
        context: Optional[RequestContext] = None,
        notes: Optional[str] = None
    ) -> AssignmentHistory:
        """
        Record an assignment lifecycle event.
        
        Order number and installer name are copied from the entities as they
        are right now so the row stays readable after renames and deletions.
        """
        entry = AssignmentHistory(
            assignment_id=assignment.id,
            order_id=assignment.order_id,
            order_number=order.order_number if order else None,
            installer_id=assignment.installer_id,
            installer_name=installer.name if installer else None,
            scheduled_date=stringify(assignment.scheduled_date),
            scheduled_start_time=assignment.scheduled_start_time,
            scheduled_end_time=assignment.scheduled_end_time,
            action=action,
            assigned_by=context.user_id if context else None,
            assigned_by_name=context.user_name if context else None,
            notes=notes,
        )
        self.db.add(entry)
        logger.debug(f"Assignment history '{action}' for order {assignment.order_id}")
        return entry
    
    def get_order_history(self, order_id: int) -> list[OrderHistory]:
        """Order history, newest first"""
        return (
            self.db.query(OrderHistory)
            .filter(OrderHistory.order_id == order_id)
            .order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc())
            .all()
        )
    
    def list_assignment_history(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        installer_id: Optional[int] = None,
        order_id: Optional[int] = None,
        order_number: Optional[str] = None,
        action: Optional[str] = None,
        limit: Optional[int] = None
    ) -> list[AssignmentHistory]:
        """Filtered assignment history, newest first; dates filter on the scheduled date"""
        query = self.db.query(AssignmentHistory)
        
        if start_date:
            query = query.filter(AssignmentHistory.scheduled_date >= start_date.isoformat())
        if end_date:
            query = query.filter(AssignmentHistory.scheduled_date <= end_date.isoformat())
        if installer_id:
            query = query.filter(AssignmentHistory.installer_id == installer_id)
        if order_id:
            query = query.filter(AssignmentHistory.order_id == order_id)
        if order_number:
            query = query.filter(AssignmentHistory.order_number == order_number)
        if action:
            query = query.filter(AssignmentHistory.action == action)
        
        query = query.order_by(AssignmentHistory.created_at.desc(), AssignmentHistory.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()
