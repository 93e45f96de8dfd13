"""
Assignment lifecycle: create, update, delete and reassign the binding
between an order, an installer and a scheduled slot.

Invariants kept here (and backed by partial unique indexes):
    - an (installer, date, start time) slot holds at most one active assignment
    - an order has at most one active assignment
Each mutation commits together with its assignment history row and the
order status side effect. The owner is notified after the commit.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler import config
from scheduler.auth.auth_handler import RequestContext
from scheduler.models.assignment import Assignment
from scheduler.models.installer import Installer
from scheduler.models.order import Order
from scheduler.services import notifications
from scheduler.services.history_service import HistoryService
from scheduler.services.order_service import OrderService
from scheduler.utils.error_handler import ConflictError, NotFoundError, ValidationError, translate_integrity_error
from scheduler.utils.time_utils import (
    add_hours, generate_time_slots, is_valid_24_hour_time,
    parse_appointment_date, parse_appointment_time,
)

logger = logging.getLogger(__name__)

def validate_slot_times(start_time: Optional[str], end_time: Optional[str]) -> None:
    for label, value in (("start time", start_time), ("end time", end_time)):
        if value is not None and not is_valid_24_hour_time(value):
            raise ValidationError(f"Invalid {label} '{value}', expected HH:MM", error_code="INVALID_TIME")

class AssignmentService:
    """Service for the order <-> installer <-> slot lifecycle"""
    
    def __init__(self, db: Session):
        self.db = db
        self.history = HistoryService(db)
        self.orders = OrderService(db)
    
    # Lookups
    
    def get_assignment(self, assignment_id: int) -> Assignment:
        assignment = self.db.query(Assignment).filter(Assignment.id == assignment_id).first()
        if not assignment:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        return assignment
    
    def _get_installer(self, installer_id: int) -> Installer:
        installer = self.db.query(Installer).filter(Installer.id == installer_id).first()
        if not installer:
            raise NotFoundError(f"Installer {installer_id} not found")
        return installer
    
    def list_assignments(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        installer_id: Optional[int] = None,
        order_id: Optional[int] = None,
        include_cancelled: bool = True
    ) -> list[Assignment]:
        query = self.db.query(Assignment)
        if start_date:
            query = query.filter(Assignment.scheduled_date >= start_date)
        if end_date:
            query = query.filter(Assignment.scheduled_date <= end_date)
        if installer_id:
            query = query.filter(Assignment.installer_id == installer_id)
        if order_id:
            query = query.filter(Assignment.order_id == order_id)
        if not include_cancelled:
            query = query.filter(Assignment.status != "cancelled")
        return query.order_by(
            Assignment.scheduled_date, Assignment.scheduled_start_time, Assignment.id
        ).all()
    
    def find_slot_conflict(
        self,
        installer_id: int,
        scheduled_date: date,
        start_time: str,
        exclude_id: Optional[int] = None
    ) -> Optional[Assignment]:
        query = self.db.query(Assignment).filter(
            Assignment.installer_id == installer_id,
            Assignment.scheduled_date == scheduled_date,
            Assignment.scheduled_start_time == start_time,
            Assignment.status != "cancelled",
        )
        if exclude_id:
            query = query.filter(Assignment.id != exclude_id)
        return query.first()
    
    def _ensure_slot_free(self, installer: Installer, scheduled_date: date, start_time: str, exclude_id: Optional[int] = None) -> None:
        conflict = self.find_slot_conflict(installer.id, scheduled_date, start_time, exclude_id)
        if conflict:
            logger.warning(
                f"Slot conflict: installer {installer.id} on {scheduled_date} at {start_time} "
                f"held by assignment {conflict.id}"
            )
            raise ConflictError(
                f"{installer.name} already has an assignment on {scheduled_date.isoformat()} at {start_time}",
                error_code="SLOT_OCCUPIED"
            )
    
    def _commit(self) -> None:
        """Commit; a unique index violation means another request took the slot first"""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Assignment constraint violated: {e.orig}")
            raise translate_integrity_error(e, "The slot or order was assigned concurrently; please retry", "SLOT_OCCUPIED")
    
    # Mutations
    
    async def create_assignment(
        self,
        order_id: int,
        installer_id: int,
        scheduled_date: date,
        start_time: str,
        end_time: str,
        notes: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> Assignment:
        """Bind an order to an empty slot and mark the order 'assigned'"""
        validate_slot_times(start_time, end_time)
        order = self.orders.get_order(order_id)
        installer = self._get_installer(installer_id)
        if not installer.is_active:
            raise ValidationError(f"Installer {installer.name} is inactive", error_code="INSTALLER_INACTIVE")
        
        self._ensure_slot_free(installer, scheduled_date, start_time)
        existing = self.orders.get_active_assignment(order_id)
        if existing:
            raise ConflictError(
                f"Order {order.order_number or order.id} is already assigned (assignment {existing.id}); reassign it instead",
                error_code="ORDER_ALREADY_ASSIGNED"
            )
        
        assignment = Assignment(
            order_id=order_id,
            installer_id=installer_id,
            scheduled_date=scheduled_date,
            scheduled_start_time=start_time,
            scheduled_end_time=end_time,
            status="scheduled",
            notes=notes,
        )
        self.db.add(assignment)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(e, "The slot or order was assigned concurrently; please retry", "SLOT_OCCUPIED")
        
        self.orders.set_status(order, "assigned", context)
        self.history.record_assignment_event("created", assignment, order, installer, context, notes=notes)
        self._commit()
        self.db.refresh(assignment)
        
        logger.info(f"Assigned order {order_id} to installer {installer_id} on {scheduled_date} {start_time}-{end_time}")
        await self._notify_assigned(order, installer, assignment)
        return assignment
    
    async def update_assignment(self, assignment_id: int, data: dict, context: Optional[RequestContext] = None) -> Assignment:
        """
        Change installer, schedule, status or notes in place.
        
        The history action is 'reassigned' when the installer changes and
        'updated' otherwise. Moving to a different slot is re-checked for
        occupancy; cancelling frees the order back to 'pending'.
        """
        assignment = self.get_assignment(assignment_id)
        validate_slot_times(data.get("scheduled_start_time"), data.get("scheduled_end_time"))
        
        changed = {
            field: value for field, value in data.items()
            if field in ("installer_id", "scheduled_date", "scheduled_start_time", "scheduled_end_time", "status", "notes")
            and getattr(assignment, field) != value
        }
        if not changed:
            return assignment
        
        installer = self._get_installer(changed.get("installer_id", assignment.installer_id))
        order = self.orders.get_order(assignment.order_id)
        new_status = changed.get("status", assignment.status)
        was_cancelled = assignment.status == "cancelled"
        
        if new_status != "cancelled":
            moves_slot = any(f in changed for f in ("installer_id", "scheduled_date", "scheduled_start_time"))
            if moves_slot or was_cancelled:
                self._ensure_slot_free(
                    installer,
                    changed.get("scheduled_date", assignment.scheduled_date),
                    changed.get("scheduled_start_time", assignment.scheduled_start_time),
                    exclude_id=assignment.id,
                )
            if was_cancelled:
                other = self.orders.get_active_assignment(order.id)
                if other and other.id != assignment.id:
                    raise ConflictError(
                        f"Order {order.order_number or order.id} already has an active assignment",
                        error_code="ORDER_ALREADY_ASSIGNED"
                    )
        
        action = "reassigned" if "installer_id" in changed else "updated"
        for field, value in changed.items():
            setattr(assignment, field, value)
        
        if new_status == "cancelled" and not was_cancelled and order.status == "assigned":
            self.orders.set_status(order, "pending", context)
        elif was_cancelled and new_status != "cancelled":
            self.orders.set_status(order, "assigned", context)
        
        self.history.record_assignment_event(action, assignment, order, installer, context, notes=data.get("notes"))
        self._commit()
        self.db.refresh(assignment)
        logger.info(f"Updated assignment {assignment_id} ({action}): {', '.join(changed)}")
        return assignment
    
    async def delete_assignment(
        self,
        assignment_id: int,
        context: Optional[RequestContext] = None,
        revert_order_status: bool = True
    ) -> None:
        """
        Remove an assignment. By default the order goes back to 'pending'
        in the same transaction, but only when the removed row was the
        order's active assignment. History rows keep the deleted id.
        """
        assignment = self.get_assignment(assignment_id)
        order = self.db.query(Order).filter(Order.id == assignment.order_id).first()
        installer = self.db.query(Installer).filter(Installer.id == assignment.installer_id).first()
        
        self.history.record_assignment_event("deleted", assignment, order, installer, context)
        was_active = assignment.status != "cancelled"
        if revert_order_status and order and was_active:
            self.orders.set_status(order, "pending", context)
        self.db.delete(assignment)
        self.db.commit()
        logger.info(f"Deleted assignment {assignment_id} for order {assignment.order_id}")
    
    async def reassign(
        self,
        assignment_id: int,
        installer_id: int,
        scheduled_date: Optional[date] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        notes: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> Assignment:
        """
        Move an order to another installer and/or slot as one operation.
        
        The target slot is checked before anything changes; if it is taken
        the original assignment is left untouched. Otherwise the old row is
        replaced by a new one and a single 'reassigned' history row is kept.
        """
        validate_slot_times(start_time, end_time)
        old = self.get_assignment(assignment_id)
        if old.status == "cancelled":
            raise ValidationError(f"Assignment {assignment_id} is cancelled and cannot be reassigned")
        
        target_installer = self._get_installer(installer_id)
        if not target_installer.is_active:
            raise ValidationError(f"Installer {target_installer.name} is inactive", error_code="INSTALLER_INACTIVE")
        old_installer = self.db.query(Installer).filter(Installer.id == old.installer_id).first()
        order = self.orders.get_order(old.order_id)
        
        target_date = scheduled_date or old.scheduled_date
        target_start = start_time or old.scheduled_start_time
        target_end = end_time or old.scheduled_end_time
        
        if (installer_id, target_date, target_start) == (old.installer_id, old.scheduled_date, old.scheduled_start_time):
            raise ConflictError("Order is already assigned to this installer and slot", error_code="ALREADY_ASSIGNED")
        self._ensure_slot_free(target_installer, target_date, target_start, exclude_id=old.id)
        
        from_text = (
            f"Reassigned from {old_installer.name if old_installer else f'installer {old.installer_id}'} "
            f"({old.scheduled_date.isoformat()} {old.scheduled_start_time}-{old.scheduled_end_time})"
        )
        
        self.db.delete(old)
        self.db.flush()
        replacement = Assignment(
            order_id=order.id,
            installer_id=installer_id,
            scheduled_date=target_date,
            scheduled_start_time=target_start,
            scheduled_end_time=target_end,
            status="scheduled",
            notes=notes if notes is not None else old.notes,
        )
        self.db.add(replacement)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(e, "The target slot was taken concurrently; please retry", "SLOT_OCCUPIED")
        
        self.orders.set_status(order, "assigned", context)
        self.history.record_assignment_event(
            "reassigned", replacement, order, target_installer, context,
            notes=f"{from_text}. {notes}" if notes else from_text
        )
        self._commit()
        self.db.refresh(replacement)
        
        logger.info(f"Reassigned order {order.id} from assignment {assignment_id} to {replacement.id} (installer {installer_id})")
        await self._notify_assigned(order, target_installer, replacement)
        return replacement
    
    async def quick_assign(self, order_id: int, installer_id: int, context: Optional[RequestContext] = None) -> Assignment:
        """
        Assign an order at its own appointment date and time, with the
        default duration. An order already held by another installer is
        reassigned.
        """
        order = self.orders.get_order(order_id)
        scheduled_date = parse_appointment_date(order.appointment_date)
        start_time = parse_appointment_time(order.appointment_time)
        if not scheduled_date or not start_time:
            raise ValidationError(
                f"Order {order.order_number or order.id} is missing appointment details",
                error_code="MISSING_APPOINTMENT"
            )
        end_time = add_hours(start_time, config.DEFAULT_ASSIGNMENT_HOURS)
        
        existing = self.orders.get_active_assignment(order_id)
        if existing:
            if existing.installer_id == installer_id:
                raise ConflictError("Already assigned to this installer", error_code="ALREADY_ASSIGNED")
            return await self.reassign(
                existing.id, installer_id, scheduled_date, start_time, end_time, context=context
            )
        return await self.create_assignment(
            order_id, installer_id, scheduled_date, start_time, end_time, context=context
        )
    
    async def _notify_assigned(self, order: Order, installer: Installer, assignment: Assignment) -> None:
        try:
            await notifications.notify_order_assigned(
                order_number=order.order_number or order.service_number,
                installer_name=installer.name,
                customer_name=order.customer_name,
                scheduled_date=assignment.scheduled_date.isoformat(),
                scheduled_time=f"{assignment.scheduled_start_time} - {assignment.scheduled_end_time}",
            )
        except Exception as e:
            logger.error(f"Failed to send assignment notification for order {order.id}: {e}")
    
    # Schedule views
    
    def route_for(self, installer_id: int, scheduled_date: date) -> list[tuple[Assignment, Order]]:
        """An installer's stops for a day, ordered alphabetically by address (blank last)"""
        self._get_installer(installer_id)
        rows = (
            self.db.query(Assignment, Order)
            .join(Order, Order.id == Assignment.order_id)
            .filter(
                Assignment.installer_id == installer_id,
                Assignment.scheduled_date == scheduled_date,
                Assignment.status != "cancelled",
            )
            .all()
        )
        return sorted(rows, key=lambda row: (not row[1].address, (row[1].address or "").lower()))
    
    def daily_grid(self, scheduled_date: date) -> dict:
        """Time slots for the day and each active installer's assignments keyed by start time"""
        installers = (
            self.db.query(Installer)
            .filter(Installer.is_active == 1)
            .order_by(Installer.name)
            .all()
        )
        assignments = self.list_assignments(scheduled_date, scheduled_date, include_cancelled=False)
        by_installer: dict[int, dict[str, Assignment]] = {}
        for assignment in assignments:
            by_installer.setdefault(assignment.installer_id, {})[assignment.scheduled_start_time] = assignment
        
        return {
            "date": scheduled_date,
            "time_slots": generate_time_slots(config.SCHEDULE_START_HOUR, config.SCHEDULE_END_HOUR),
            "installers": [
                {"installer": installer, "slots": by_installer.get(installer.id, {})}
                for installer in installers
            ],
        }
