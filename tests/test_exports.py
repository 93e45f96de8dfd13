"""
Spreadsheet export tests
"""

from io import BytesIO

from openpyxl import load_workbook

from scheduler.services.export_service import XLSX_MEDIA_TYPE, SCHEDULE_HEADERS

def read_sheet(content):
    wb = load_workbook(BytesIO(content))
    try:
        return [list(row) for row in wb.active.iter_rows(values_only=True)]
    finally:
        wb.close()

def test_schedule_export(client, make_order, make_installer):
    order = make_order(order_number="WO-X", customer_name="Xavier", service_type="Fibre", priority="high")
    installer = make_installer("Ivan Installer")
    client.post("/api/v1/assignments/", json={
        "order_id": order.id, "installer_id": installer.id, "scheduled_date": "2025-11-13",
        "scheduled_start_time": "09:00", "scheduled_end_time": "11:00",
    })
    
    response = client.get("/api/v1/assignments/export", params={"start_date": "2025-11-01", "end_date": "2025-11-30"})
    
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "schedule_2025-11-01_2025-11-30.xlsx" in response.headers["content-disposition"]
    rows = read_sheet(response.content)
    assert rows[0] == SCHEDULE_HEADERS
    assert rows[1] == [
        "2025-11-13", "09:00", "11:00", "Ivan Installer", "WO-X", "Xavier",
        "Fibre", "1 Main Street", "high", "scheduled",
    ]

def test_schedule_export_requires_range(client):
    assert client.get("/api/v1/assignments/export").status_code == 422

def test_order_export(client, make_order):
    make_order(order_number="WO-1", customer_name="Alice")
    make_order(order_number="WO-2", customer_name="Bob")
    
    response = client.get("/api/v1/orders/export")
    
    rows = read_sheet(response.content)
    assert rows[0][:4] == ["Order Number", "Service Number", "Ticket Number", "Customer"]
    assert [r[0] for r in rows[1:]] == ["WO-1", "WO-2"]

def test_assignment_history_export(client, make_order, make_installer):
    order = make_order(order_number="WO-H")
    installer = make_installer()
    assignment = client.post("/api/v1/assignments/", json={
        "order_id": order.id, "installer_id": installer.id, "scheduled_date": "2025-11-13",
        "scheduled_start_time": "09:00", "scheduled_end_time": "11:00",
    }).json()
    client.delete(f"/api/v1/assignments/{assignment['id']}")
    
    response = client.get("/api/v1/assignment-history/export")
    
    rows = read_sheet(response.content)
    assert [(r[1], r[2]) for r in rows[1:]] == [("deleted", "WO-H"), ("created", "WO-H")]
