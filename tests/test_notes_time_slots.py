"""
API tests for daily notes and configurable time slots
"""

def create_note(client, **fields):
    note_data = {
        "date": "2025-11-13",
        "service_number": "SVC-1",
        "order_number": "WO-1",
        "customer_name": "Jane Customer",
        "note_type": "incident",
        "title": "Dog on premises",
        "content": "Call before entering the yard",
    }
    note_data.update(fields)
    response = client.post("/api/v1/notes/", json=note_data)
    assert response.status_code == 201, response.text
    return response.json()

class TestNotes:
    
    def test_create_note_records_author(self, client):
        note = create_note(client)
        assert note["created_by"] == "Admin Tester"
        assert note["status"] == "open"
        assert note["priority"] == "medium"
    
    def test_invalid_note(self, client):
        response = client.post("/api/v1/notes/", json={
            "date": "13/11/2025", "title": "x", "content": "y",
        })
        assert response.status_code == 422
        
        response = client.post("/api/v1/notes/", json={
            "date": "2025-11-13", "title": "x", "content": "y", "note_type": "gossip",
        })
        assert response.status_code == 422
    
    def test_queries(self, client):
        create_note(client, date="2025-11-12", service_number="SVC-A", title="First")
        create_note(client, date="2025-11-13", service_number="SVC-B", title="Second")
        create_note(client, date="2025-11-20", service_number="SVC-A", title="Third")
        
        by_date = client.get("/api/v1/notes/by-date/2025-11-13").json()
        assert [n["title"] for n in by_date] == ["Second"]
        
        by_service = client.get("/api/v1/notes/by-service-number/SVC-A").json()
        assert [n["title"] for n in by_service] == ["First", "Third"]
        
        in_range = client.get("/api/v1/notes/range", params={"start_date": "2025-11-12", "end_date": "2025-11-13"}).json()
        assert [n["title"] for n in in_range] == ["First", "Second"]
        
        assert len(client.get("/api/v1/notes/").json()) == 3
    
    def test_update_and_delete(self, client):
        note_id = create_note(client)["id"]
        
        response = client.put(f"/api/v1/notes/{note_id}", json={"status": "resolved"})
        assert response.json()["status"] == "resolved"
        
        assert client.delete(f"/api/v1/notes/{note_id}").status_code == 200
        assert client.get(f"/api/v1/notes/{note_id}").status_code == 404
    
    def test_notes_survive_order_deletion(self, client, make_order):
        order = make_order(service_number="SVC-KEEP")
        create_note(client, service_number="SVC-KEEP")
        
        client.delete(f"/api/v1/orders/{order.id}")
        
        assert len(client.get("/api/v1/notes/by-service-number/SVC-KEEP").json()) == 1

class TestTimeSlots:
    
    def test_seed_is_idempotent(self, client):
        assert client.post("/api/v1/time-slots/seed").json() == {"seeded": 9}
        assert client.post("/api/v1/time-slots/seed").json() == {"seeded": 0}
        
        times = [s["time"] for s in client.get("/api/v1/time-slots/active").json()]
        assert times[:3] == ["9:00 AM", "10:00 AM", "11:00 AM"]
        assert times[-1] == "6:00 PM"
    
    def test_create_normalizes_time(self, client):
        response = client.post("/api/v1/time-slots/", json={"time": "07:30am"})
        assert response.status_code == 201
        assert response.json()["time"] == "7:30 AM"
        
        response = client.post("/api/v1/time-slots/", json={"time": "7:30 AM"})
        assert response.status_code == 409
    
    def test_invalid_time(self, client):
        response = client.post("/api/v1/time-slots/", json={"time": "19:00"})
        assert response.status_code == 400
    
    def test_active_filter_and_reorder(self, client):
        first = client.post("/api/v1/time-slots/", json={"time": "9:00 AM"}).json()
        second = client.post("/api/v1/time-slots/", json={"time": "1:00 PM"}).json()
        third = client.post("/api/v1/time-slots/", json={"time": "3:00 PM", "is_active": 0}).json()
        
        active = [s["time"] for s in client.get("/api/v1/time-slots/active").json()]
        assert active == ["9:00 AM", "1:00 PM"]
        
        response = client.post("/api/v1/time-slots/reorder", json={"slot_ids": [third["id"], second["id"], first["id"]]})
        assert [s["time"] for s in response.json()] == ["3:00 PM", "1:00 PM", "9:00 AM"]
        
        response = client.post("/api/v1/time-slots/reorder", json={"slot_ids": [999]})
        assert response.status_code == 404
    
    def test_admin_only(self, client, current_user):
        current_user.role = "supervisor"
        assert client.post("/api/v1/time-slots/", json={"time": "9:00 AM"}).status_code == 403
        assert client.get("/api/v1/time-slots/").status_code == 200
