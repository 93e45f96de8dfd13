"""
Spreadsheet exports of the schedule, orders and assignment history
"""

from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from scheduler.models.assignment import Assignment
from scheduler.models.history import AssignmentHistory
from scheduler.models.installer import Installer
from scheduler.models.order import Order

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SCHEDULE_HEADERS = [
    "Date", "Start Time", "End Time", "Installer", "Order Number", "Customer",
    "Service Type", "Address", "Priority", "Status",
]
ORDER_HEADERS = [
    "Order Number", "Service Number", "Ticket Number", "Customer", "Phone", "Email",
    "Service Type", "Sales/Modi Type", "Address", "Building", "Appointment Date",
    "Appointment Time", "Priority", "Status", "Reschedule Reason", "Notes",
]
HISTORY_HEADERS = [
    "Timestamp", "Action", "Order Number", "Installer", "Scheduled Date",
    "Start Time", "End Time", "By", "Notes",
]

def build_workbook(sheet_title: str, headers: list[str], rows: Iterable[list]) -> bytes:
    """Write one sheet with a header row and return the .xlsx bytes"""
    wb = Workbook()
    try:
        sheet = wb.active
        sheet.title = sheet_title
        sheet.append(headers)
        for row in rows:
            sheet.append(row)
        for index, header in enumerate(headers, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = max(12, len(header) + 2)
        
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
    finally:
        wb.close()

def export_schedule(db: Session, assignments: list[Assignment]) -> bytes:
    order_ids = {a.order_id for a in assignments}
    installer_ids = {a.installer_id for a in assignments}
    orders = {o.id: o for o in db.query(Order).filter(Order.id.in_(order_ids)).all()} if order_ids else {}
    installers = {i.id: i for i in db.query(Installer).filter(Installer.id.in_(installer_ids)).all()} if installer_ids else {}
    
    rows = []
    for assignment in assignments:
        order = orders.get(assignment.order_id)
        installer = installers.get(assignment.installer_id)
        rows.append([
            assignment.scheduled_date.isoformat(),
            assignment.scheduled_start_time,
            assignment.scheduled_end_time,
            installer.name if installer else "Unknown",
            order.order_number if order else "",
            order.customer_name if order else "",
            order.service_type if order else "",
            order.address if order else "",
            order.priority if order else "",
            assignment.status,
        ])
    return build_workbook("Schedule", SCHEDULE_HEADERS, rows)

def export_orders(orders: list[Order]) -> bytes:
    rows = [
        [
            o.order_number, o.service_number, o.ticket_number, o.customer_name, o.customer_phone,
            o.customer_email, o.service_type, o.sales_modi_type, o.address, o.building_name,
            o.appointment_date, o.appointment_time, o.priority, o.status, o.reschedule_reason, o.notes,
        ]
        for o in orders
    ]
    return build_workbook("Orders", ORDER_HEADERS, rows)

def export_assignment_history(entries: list[AssignmentHistory]) -> bytes:
    rows = [
        [
            e.created_at.isoformat() if e.created_at else "",
            e.action, e.order_number, e.installer_name, e.scheduled_date,
            e.scheduled_start_time, e.scheduled_end_time, e.assigned_by_name, e.notes,
        ]
        for e in entries
    ]
    return build_workbook("Assignment History", HISTORY_HEADERS, rows)
