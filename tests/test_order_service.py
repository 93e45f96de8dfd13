"""
Order workflow: history diffing, the reschedule guard and status notifications
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from scheduler.auth.auth_handler import RequestContext
from scheduler.models.assignment import Assignment
from scheduler.models.history import AssignmentHistory, OrderHistory
from scheduler.models.order import Order
from scheduler.services import notifications
from scheduler.services.order_service import OrderService
from scheduler.utils.error_handler import AuthorizationError, ConflictError, DatabaseError, NotFoundError, ValidationError

SUPERVISOR = RequestContext(user_id=7, user_name="Sam Supervisor", role="supervisor")
ADMIN = RequestContext(user_id=1, user_name="Ada Admin", role="admin")

def run(coro):
    return asyncio.run(coro)

def order_data(**fields):
    data = {
        "order_number": "WO-100",
        "service_number": "SVC-100",
        "customer_name": "Jane Customer",
        "appointment_date": "2025-11-13",
        "appointment_time": "02:30 PM",
    }
    data.update(fields)
    return data

class TestCreateOrder:
    
    def test_create_writes_one_created_row(self, db):
        order = run(OrderService(db).create_order(order_data(), SUPERVISOR))
        
        rows = db.query(OrderHistory).filter(OrderHistory.order_id == order.id).all()
        assert len(rows) == 1
        assert rows[0].action == "created"
        assert rows[0].field_name is None
        assert rows[0].user_id == 7
        assert rows[0].user_name == "Sam Supervisor"
        assert '"customer_name": "Jane Customer"' in rows[0].new_value
    
    def test_create_normalizes_time_and_defaults(self, db):
        order = run(OrderService(db).create_order(order_data(appointment_time=0.375)))
        assert order.appointment_time == "9:00 AM"
        assert order.status == "pending"
        assert order.priority == "medium"
        assert order.estimated_duration == 60
    
    def test_non_finite_excel_time_is_stored_as_unknown(self, db):
        order = run(OrderService(db).create_order(order_data(appointment_time=float("nan"))))
        assert order.appointment_time is None
    
    def test_duplicate_service_and_order_number_conflicts(self, db):
        service = OrderService(db)
        run(service.create_order(order_data()))
        with pytest.raises(ConflictError):
            run(service.create_order(order_data()))
        assert db.query(Order).count() == 1
        assert db.query(OrderHistory).count() == 1
    
    def test_create_rescheduled_requires_fields(self, db):
        with pytest.raises(ValidationError):
            run(OrderService(db).create_order(order_data(status="rescheduled")))
        assert db.query(Order).count() == 0

class TestUpdateOrder:
    
    def test_one_row_per_changed_field(self, db, make_order):
        order = make_order(customer_name="Old Name", address="1 Main Street")
        
        run(OrderService(db).update_order(order.id, {
            "customer_name": "New Name",
            "address": "1 Main Street",
            "notes": "Gate code 1234",
        }, SUPERVISOR))
        
        rows = db.query(OrderHistory).filter(OrderHistory.order_id == order.id).order_by(OrderHistory.id).all()
        assert [(r.action, r.field_name) for r in rows] == [("updated", "customer_name"), ("updated", "notes")]
        assert rows[0].old_value == "Old Name"
        assert rows[0].new_value == "New Name"
        assert rows[1].old_value is None
    
    def test_status_change_uses_status_changed_action(self, db, make_order):
        order = make_order()
        run(OrderService(db).update_order(order.id, {"status": "on_the_way"}, SUPERVISOR))
        
        row = db.query(OrderHistory).filter(OrderHistory.order_id == order.id).one()
        assert (row.action, row.field_name, row.old_value, row.new_value) == (
            "status_changed", "status", "pending", "on_the_way"
        )
    
    def test_no_changes_writes_nothing(self, db, make_order):
        order = make_order()
        run(OrderService(db).update_order(order.id, {"status": "pending"}))
        assert db.query(OrderHistory).count() == 0
    
    def test_reschedule_without_reason_is_rejected_before_any_write(self, db, make_order):
        order = make_order()
        before = db.query(OrderHistory).count()
        
        with pytest.raises(ValidationError) as exc_info:
            run(OrderService(db).update_order(order.id, {
                "status": "rescheduled",
                "rescheduled_date": datetime(2025, 11, 20),
                "rescheduled_time": "10:00 AM",
            }))
        
        assert exc_info.value.error_code == "RESCHEDULE_FIELDS_REQUIRED"
        assert "reschedule_reason" in exc_info.value.message
        assert db.query(OrderHistory).count() == before
        db.refresh(order)
        assert order.status == "pending"
    
    def test_rescheduled_order_keeps_its_reschedule_fields(self, db, make_order):
        order = make_order()
        service = OrderService(db)
        run(service.update_order(order.id, {
            "status": "rescheduled",
            "reschedule_reason": "customer_issue",
            "rescheduled_date": datetime(2025, 11, 20),
            "rescheduled_time": "10:00 AM",
        }))
        before = db.query(OrderHistory).count()
        
        for field in ("reschedule_reason", "rescheduled_date", "rescheduled_time"):
            with pytest.raises(ValidationError) as exc_info:
                run(service.update_order(order.id, {field: None}))
            assert field in exc_info.value.message
        
        assert db.query(OrderHistory).count() == before
        db.refresh(order)
        assert order.reschedule_reason == "customer_issue"
        
        run(service.update_order(order.id, {"status": "pending", "reschedule_reason": None}))
        db.refresh(order)
        assert (order.status, order.reschedule_reason) == ("pending", None)
    
    @pytest.mark.parametrize("field", ["status", "priority", "customer_name", "service_number", "estimated_duration"])
    def test_null_required_field_is_a_validation_error(self, db, make_order, field):
        order = make_order()
        
        with pytest.raises(ValidationError) as exc_info:
            run(OrderService(db).update_order(order.id, {field: None}))
        
        assert exc_info.value.error_code == "REQUIRED_FIELD_MISSING"
        assert db.query(OrderHistory).count() == 0
    
    def test_non_unique_integrity_error_is_a_database_error(self, db, make_order, monkeypatch):
        order = make_order()
        service = OrderService(db)
        
        def failing_commit():
            raise IntegrityError("UPDATE orders", {}, Exception("NOT NULL constraint failed: orders.status"))
        monkeypatch.setattr(service.db, "commit", failing_commit)
        
        with pytest.raises(DatabaseError):
            run(service.update_order(order.id, {"notes": "Gate code 1234"}))
    
    def test_missing_order(self, db):
        with pytest.raises(NotFoundError):
            run(OrderService(db).update_order(999, {"status": "completed"}))

class TestStatusNotifications:
    
    def test_completed_names_the_assigned_installer(self, db, make_order, make_installer, sent_notifications):
        order = make_order(order_number="WO-7")
        installer = make_installer("Ivan Installer")
        db.add(Assignment(
            order_id=order.id, installer_id=installer.id, scheduled_date=datetime(2025, 11, 13).date(),
            scheduled_start_time="09:00", scheduled_end_time="11:00",
        ))
        db.commit()
        
        run(OrderService(db).update_order(order.id, {"status": "completed"}))
        
        assert len(sent_notifications) == 1
        title, content = sent_notifications[0]
        assert title == "Order Completed: WO-7"
        assert "Ivan Installer" in content
    
    def test_completed_without_assignment_uses_unknown(self, db, make_order, sent_notifications):
        order = make_order()
        run(OrderService(db).update_order(order.id, {"status": "completed"}))
        assert "Unknown" in sent_notifications[0][1]
    
    def test_rescheduled_reports_reason_and_new_slot(self, db, make_order, sent_notifications):
        order = make_order(order_number="WO-8")
        run(OrderService(db).update_order(order.id, {
            "status": "rescheduled",
            "reschedule_reason": "building_issue",
            "rescheduled_date": datetime(2025, 11, 20),
            "rescheduled_time": "10:00 AM",
        }))
        
        title, content = sent_notifications[0]
        assert title == "Order Rescheduled: WO-8"
        assert "building issue" in content
        assert "2025-11-20 at 10:00 AM" in content
    
    def test_withdrawn(self, db, make_order, sent_notifications):
        order = make_order(order_number="WO-9")
        run(OrderService(db).update_order(order.id, {"status": "withdrawn"}))
        assert sent_notifications[0][0] == "Order Withdrawn: WO-9"
    
    def test_other_statuses_do_not_notify(self, db, make_order, sent_notifications):
        order = make_order()
        run(OrderService(db).update_order(order.id, {"status": "on_the_way"}))
        assert sent_notifications == []
    
    def test_notification_failure_does_not_fail_update(self, db, make_order, monkeypatch):
        async def broken_channel(title, content):
            raise RuntimeError("webhook down")
        
        monkeypatch.setattr(notifications, "notify_owner", broken_channel)
        order = make_order()
        
        updated = run(OrderService(db).update_order(order.id, {"status": "withdrawn"}))
        
        assert updated.status == "withdrawn"
        assert db.query(OrderHistory).filter(OrderHistory.action == "status_changed").count() == 1

class TestDeleteAndClear:
    
    def test_delete_records_history_and_removes_assignments(self, db, make_order, make_installer):
        order = make_order(order_number="WO-DEL")
        installer = make_installer()
        db.add(Assignment(
            order_id=order.id, installer_id=installer.id, scheduled_date=datetime(2025, 11, 13).date(),
            scheduled_start_time="09:00", scheduled_end_time="11:00",
        ))
        db.commit()
        order_id = order.id
        
        run(OrderService(db).delete_order(order_id, SUPERVISOR))
        
        assert db.query(Order).count() == 0
        assert db.query(Assignment).count() == 0
        deleted = db.query(OrderHistory).filter(OrderHistory.order_id == order_id).one()
        assert deleted.action == "deleted"
        assignment_rows = db.query(AssignmentHistory).filter(AssignmentHistory.order_number == "WO-DEL").all()
        assert [r.action for r in assignment_rows] == ["deleted"]
    
    def test_clear_all_requires_admin(self, db, make_order):
        make_order()
        with pytest.raises(AuthorizationError):
            run(OrderService(db).clear_all(SUPERVISOR))
        assert db.query(Order).count() == 1
    
    def test_clear_all_deletes_everything_without_history(self, db, make_order, make_installer):
        order = make_order()
        make_order()
        installer = make_installer()
        db.add(Assignment(
            order_id=order.id, installer_id=installer.id, scheduled_date=datetime(2025, 11, 13).date(),
            scheduled_start_time="09:00", scheduled_end_time="11:00",
        ))
        db.commit()
        
        result = run(OrderService(db).clear_all(ADMIN))
        
        assert result == {"orders_deleted": 2, "assignments_deleted": 1}
        assert db.query(Order).count() == 0
        assert db.query(OrderHistory).count() == 0

class TestBulkImport:
    
    def test_bulk_create_rejects_whole_batch_on_duplicate(self, db, make_order):
        make_order(service_number="SVC-1", order_number="WO-1")
        make_order(service_number="SVC-2", order_number=None)
        
        with pytest.raises(ConflictError) as exc_info:
            run(OrderService(db).bulk_create([
                {"service_number": "SVC-1", "order_number": "WO-1", "customer_name": "A"},
                {"service_number": "SVC-2", "customer_name": "B"},
                {"service_number": "SVC-3", "order_number": "WO-3", "customer_name": "C"},
            ]))
        
        assert exc_info.value.error_code == "DUPLICATE_ORDERS"
        assert exc_info.value.message == (
            "Duplicate orders found: Service: SVC-1, WO: WO-1; Service: SVC-2 (no WO)"
        )
        assert db.query(Order).count() == 2
    
    def test_bulk_create_converts_excel_times(self, db):
        orders = run(OrderService(db).bulk_create([
            {"service_number": "SVC-1", "order_number": "WO-1", "customer_name": "A", "appointment_time": 0.5},
            {"service_number": "SVC-2", "order_number": "WO-2", "customer_name": "B", "appointment_time": "09:00 AM"},
        ]))
        
        assert [o.appointment_time for o in orders] == ["12:00 PM", "9:00 AM"]
        assert db.query(OrderHistory).filter(OrderHistory.action == "created").count() == 2
    
    def test_bulk_upsert(self, db, make_order):
        existing = make_order(service_number="SVC-1", order_number="WO-1", customer_name="Old")
        
        result = run(OrderService(db).bulk_upsert([
            {"service_number": "SVC-1", "order_number": "WO-1", "customer_name": "New"},
            {"service_number": "SVC-2", "order_number": "WO-2", "customer_name": "Fresh"},
            {"customer_name": "No service number"},
        ]))
        
        assert result == {"created": 1, "updated": 1, "skipped": 1}
        db.refresh(existing)
        assert existing.customer_name == "New"
        change = db.query(OrderHistory).filter(OrderHistory.order_id == existing.id).one()
        assert (change.field_name, change.old_value, change.new_value) == ("customer_name", "Old", "New")

class TestListOrders:
    
    def test_filters(self, db, make_order):
        make_order(customer_name="Alice", status="pending", appointment_date="13/11/2025")
        make_order(customer_name="Bob", status="assigned", appointment_date="Nov 14, 2025")
        make_order(customer_name="Carol", status="pending", appointment_date="whenever")
        service = OrderService(db)
        
        assert [o.customer_name for o in service.list_orders(status="assigned")] == ["Bob"]
        assert [o.customer_name for o in service.list_orders(search="ali")] == ["Alice"]
        on_13th = service.list_orders(appointment_date=datetime(2025, 11, 13).date())
        assert [o.customer_name for o in on_13th] == ["Alice"]
        by_name = service.list_orders(sort_by="customer_name", descending=False)
        assert [o.customer_name for o in by_name] == ["Alice", "Bob", "Carol"]
