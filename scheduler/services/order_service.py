"""
Order service: CRUD plus the order status workflow

Every mutation is diffed into order_history inside the same transaction.
Owner notifications for completion, reschedule and withdrawal are sent
after the commit and never fail the update.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler.auth.auth_handler import RequestContext
from scheduler.models.assignment import Assignment
from scheduler.models.installer import Installer
from scheduler.models.order import Order, REQUIRED_FIELDS, TRACKED_FIELDS
from scheduler.services import notifications
from scheduler.services.history_service import HistoryService
from scheduler.utils.error_handler import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError, translate_integrity_error,
)
from scheduler.utils.time_utils import excel_time_to_readable, parse_appointment_date

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": Order.created_at,
    "order_number": Order.order_number,
    "customer_name": Order.customer_name,
    "status": Order.status,
    "priority": Order.priority,
}

def validate_reschedule(data: dict) -> None:
    """A rescheduled order needs a reason, a new date and a new time"""
    missing = [
        field for field in ("reschedule_reason", "rescheduled_date", "rescheduled_time")
        if not data.get(field)
    ]
    if missing:
        raise ValidationError(
            f"Rescheduling requires {', '.join(missing)}",
            error_code="RESCHEDULE_FIELDS_REQUIRED"
        )

def reject_missing_required(data: dict) -> None:
    """Explicit nulls for NOT NULL columns are rejected before anything is written"""
    missing = [field for field in REQUIRED_FIELDS if field in data and data[field] is None]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} cannot be empty",
            error_code="REQUIRED_FIELD_MISSING"
        )

def check_reschedule(order: Order, data: dict) -> None:
    """
    Entering 'rescheduled' needs the three fields in the update itself;
    staying rescheduled needs them present once the update is merged.
    """
    new_status = data.get("status", order.status)
    if new_status != "rescheduled":
        return
    if order.status != "rescheduled":
        validate_reschedule(data)
    else:
        validate_reschedule({
            field: data[field] if field in data else getattr(order, field)
            for field in ("reschedule_reason", "rescheduled_date", "rescheduled_time")
        })

class OrderService:
    """Service for order management and status transitions"""
    
    def __init__(self, db: Session):
        self.db = db
        self.history = HistoryService(db)
    
    # Reads
    
    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order
    
    def list_orders(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        appointment_date: Optional[date] = None,
        sort_by: str = "created_at",
        descending: bool = True
    ) -> list[Order]:
        """
        Filtered order listing. An appointment_date filter compares parsed
        dates, so orders whose date text cannot be parsed are left out.
        """
        query = self.db.query(Order)
        
        if status:
            query = query.filter(Order.status == status)
        if priority:
            query = query.filter(Order.priority == priority)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Order.order_number.ilike(pattern),
                Order.service_number.ilike(pattern),
                Order.ticket_number.ilike(pattern),
                Order.customer_name.ilike(pattern),
                Order.address.ilike(pattern),
                Order.building_name.ilike(pattern),
            ))
        
        column = SORTABLE_FIELDS.get(sort_by, Order.created_at)
        query = query.order_by(column.desc() if descending else column.asc(), Order.id.desc() if descending else Order.id.asc())
        orders = query.all()
        
        if appointment_date:
            orders = [o for o in orders if parse_appointment_date(o.appointment_date) == appointment_date]
        return orders
    
    def get_active_assignment(self, order_id: int) -> Optional[Assignment]:
        """The order's one non-cancelled assignment, if any"""
        return (
            self.db.query(Assignment)
            .filter(Assignment.order_id == order_id, Assignment.status != "cancelled")
            .first()
        )
    
    def get_history(self, order_id: int):
        self.get_order(order_id)
        return self.history.get_order_history(order_id)
    
    # Writes
    
    def _commit(self, conflict_message: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"{conflict_message}: {e.orig}")
            raise translate_integrity_error(e, conflict_message)
    
    async def create_order(self, data: dict, context: Optional[RequestContext] = None) -> Order:
        """Insert an order and its 'created' history row"""
        data = dict(data)
        reject_missing_required(data)
        if data.get("status") == "rescheduled":
            validate_reschedule(data)
        if "appointment_time" in data:
            data["appointment_time"] = excel_time_to_readable(data["appointment_time"])
        
        order = Order(**data)
        self.db.add(order)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(
                e,
                f"Order with service number '{data.get('service_number')}' and "
                f"order number '{data.get('order_number')}' already exists"
            )
        self.history.record_order_created(order, context)
        self._commit("Order already exists")
        self.db.refresh(order)
        
        logger.info(f"Created order with ID: {order.id}")
        return order
    
    async def update_order(self, order_id: int, data: dict, context: Optional[RequestContext] = None) -> Order:
        """
        Apply a partial update.
        
        Entering 'rescheduled' is the one guarded transition: reason, date
        and time must all be supplied, and a rescheduled order cannot lose
        them. A rejected update writes nothing. Every changed
        field gets a history row; status changes may notify the owner.
        """
        order = self.get_order(order_id)
        old_status = order.status
        new_status = data.get("status")
        
        reject_missing_required(data)
        check_reschedule(order, data)
        
        changes = self._apply(order, data)
        if not changes:
            return order
        
        self.history.record_order_changes(order.id, changes, context)
        self._commit("Another order already uses this service number and order number")
        self.db.refresh(order)
        logger.info(f"Updated order {order_id}: {', '.join(changes)}")
        
        if new_status and new_status != old_status:
            await self._notify_status_change(order, data)
        return order
    
    def _apply(self, order: Order, data: dict) -> dict[str, tuple[Any, Any]]:
        changes = {}
        for field, value in data.items():
            if field not in TRACKED_FIELDS:
                continue
            old_value = getattr(order, field)
            if old_value != value:
                changes[field] = (old_value, value)
                setattr(order, field, value)
        return changes
    
    def set_status(self, order: Order, status: str, context: Optional[RequestContext] = None) -> None:
        """Status side effect of an assignment change; the caller commits"""
        if order.status == status:
            return
        self.history.record_order_changes(order.id, {"status": (order.status, status)}, context)
        order.status = status
    
    async def _notify_status_change(self, order: Order, data: dict) -> None:
        try:
            if order.status == "completed":
                await notifications.notify_order_completed(
                    order_number=order.order_number or order.service_number,
                    installer_name=self._installer_name_for(order.id),
                    customer_name=order.customer_name,
                )
            elif order.status == "rescheduled" and order.reschedule_reason:
                rescheduled_date = order.rescheduled_date
                await notifications.notify_order_rescheduled(
                    order_number=order.order_number or order.service_number,
                    installer_name=self._installer_name_for(order.id),
                    customer_name=order.customer_name,
                    reason=order.reschedule_reason,
                    new_date=rescheduled_date.date().isoformat() if rescheduled_date else "",
                    new_time=order.rescheduled_time or "",
                )
            elif order.status == "withdrawn":
                await notifications.notify_order_withdrawn(
                    order_number=order.order_number or order.service_number,
                    customer_name=order.customer_name,
                )
        except Exception as e:
            logger.error(f"Failed to send status change notification for order {order.id}: {e}")
    
    def _installer_name_for(self, order_id: int) -> str:
        assignment = self.get_active_assignment(order_id)
        if not assignment:
            return "Unknown"
        installer = self.db.query(Installer).filter(Installer.id == assignment.installer_id).first()
        return installer.name if installer else "Unknown"
    
    async def attach_docket(
        self,
        order_id: int,
        file_url: str,
        file_name: str,
        context: Optional[RequestContext] = None
    ) -> Order:
        return await self.update_order(
            order_id,
            {"docket_file_url": file_url, "docket_file_name": file_name},
            context,
        )
    
    async def delete_order(self, order_id: int, context: Optional[RequestContext] = None) -> None:
        """Delete an order together with its assignments, recording both"""
        order = self.get_order(order_id)
        
        assignments = self.db.query(Assignment).filter(Assignment.order_id == order_id).all()
        installers = {
            i.id: i for i in self.db.query(Installer).filter(
                Installer.id.in_([a.installer_id for a in assignments])
            ).all()
        } if assignments else {}
        for assignment in assignments:
            self.history.record_assignment_event(
                "deleted", assignment, order, installers.get(assignment.installer_id), context,
                notes="Order deleted"
            )
            self.db.delete(assignment)
        
        self.history.record_order_deleted(order, context)
        self.db.flush()
        self.db.delete(order)
        self.db.commit()
        logger.info(f"Deleted order with ID: {order_id} ({len(assignments)} assignments removed)")
    
    async def clear_all(self, context: RequestContext) -> dict:
        """Delete every assignment and order. Writes no history."""
        if not context.can("orders:clear_all"):
            raise AuthorizationError("Only administrators can clear all orders")
        
        assignment_count = self.db.query(Assignment).delete(synchronize_session=False)
        order_count = self.db.query(Order).delete(synchronize_session=False)
        self.db.commit()
        
        logger.warning(
            f"User {context.user_id} cleared all orders "
            f"({order_count} orders, {assignment_count} assignments)"
        )
        return {"orders_deleted": order_count, "assignments_deleted": assignment_count}
    
    # Bulk import
    
    def _find_existing(self, service_number: str, order_number: Optional[str]) -> Optional[Order]:
        """Match on (service number, order number); a blank order number matches blank"""
        query = self.db.query(Order).filter(Order.service_number == service_number)
        if order_number and order_number.strip():
            query = query.filter(Order.order_number == order_number)
        else:
            query = query.filter(or_(Order.order_number == "", Order.order_number.is_(None)))
        return query.first()
    
    async def bulk_create(self, rows: list[dict], context: Optional[RequestContext] = None) -> list[Order]:
        """Insert a batch of orders; any duplicate rejects the whole batch"""
        if not rows:
            return []
        
        duplicates = []
        for row in rows:
            if not row.get("service_number"):
                continue
            if self._find_existing(row["service_number"], row.get("order_number")):
                duplicates.append(row)
        
        if duplicates:
            duplicate_list = "; ".join(
                f"Service: {d['service_number']}, WO: {d['order_number']}"
                if d.get("order_number") else f"Service: {d['service_number']} (no WO)"
                for d in duplicates
            )
            raise ConflictError(f"Duplicate orders found: {duplicate_list}", error_code="DUPLICATE_ORDERS")
        
        orders = []
        for row in rows:
            row = dict(row)
            if "appointment_time" in row:
                row["appointment_time"] = excel_time_to_readable(row["appointment_time"])
            order = Order(**row)
            self.db.add(order)
            orders.append(order)
        
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise translate_integrity_error(e, "Batch contains duplicate service number / order number pairs", "DUPLICATE_ORDERS")
        
        for order in orders:
            self.history.record_order_created(order, context)
        self._commit("Duplicate orders found")
        
        logger.info(f"Bulk created {len(orders)} orders")
        return orders
    
    async def bulk_upsert(self, rows: list[dict], context: Optional[RequestContext] = None) -> dict:
        """Update orders matched on (service number, order number), insert the rest"""
        created = updated = skipped = 0
        for row in rows:
            if row.get("service_number"):
                reject_missing_required(row)
        
        for row in rows:
            if not row.get("service_number"):
                skipped += 1
                continue
            row = dict(row)
            if "appointment_time" in row:
                row["appointment_time"] = excel_time_to_readable(row["appointment_time"])
            
            existing = self._find_existing(row["service_number"], row.get("order_number"))
            try:
                if existing:
                    check_reschedule(existing, row)
                elif row.get("status") == "rescheduled":
                    validate_reschedule(row)
            except ValidationError:
                self.db.rollback()
                raise
            
            if existing:
                changes = self._apply(existing, row)
                if changes:
                    self.history.record_order_changes(existing.id, changes, context)
                    updated += 1
            else:
                order = Order(**row)
                self.db.add(order)
                self.db.flush()
                self.history.record_order_created(order, context)
                created += 1
        
        self._commit("Duplicate orders found")
        logger.info(f"Bulk upsert: {created} created, {updated} updated, {skipped} skipped")
        return {"created": created, "updated": updated, "skipped": skipped}
