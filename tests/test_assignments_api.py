"""
API tests for assignments and the assignment history log
"""

import pytest

@pytest.fixture
def order_id(make_order):
    return make_order(order_number="WO-API", address="5 Station Road").id

@pytest.fixture
def installer_id(make_installer):
    return make_installer("Ivan Installer").id

def assign(client, order_id, installer_id, start="09:00", end="11:00", day="2025-11-13"):
    return client.post("/api/v1/assignments/", json={
        "order_id": order_id,
        "installer_id": installer_id,
        "scheduled_date": day,
        "scheduled_start_time": start,
        "scheduled_end_time": end,
    })

class TestAssignmentEndpoints:
    
    def test_create_and_fetch(self, client, order_id, installer_id):
        response = assign(client, order_id, installer_id)
        assert response.status_code == 201, response.text
        assignment = response.json()
        assert assignment["status"] == "scheduled"
        
        assert client.get(f"/api/v1/assignments/{assignment['id']}").json()["order_id"] == order_id
        assert client.get(f"/api/v1/orders/{order_id}").json()["status"] == "assigned"
        assert len(client.get(f"/api/v1/assignments/by-order/{order_id}").json()) == 1
        assert len(client.get(f"/api/v1/assignments/by-installer/{installer_id}").json()) == 1
    
    def test_bad_time_format_is_422(self, client, order_id, installer_id):
        response = assign(client, order_id, installer_id, start="9am")
        assert response.status_code == 422
    
    def test_slot_conflict_is_409(self, client, make_order, order_id, installer_id):
        assert assign(client, order_id, installer_id).status_code == 201
        
        other = make_order().id
        response = assign(client, other, installer_id)
        
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SLOT_OCCUPIED"
        assert client.get(f"/api/v1/orders/{other}").json()["status"] == "pending"
    
    def test_date_range_listing(self, client, make_order, order_id, installer_id):
        assign(client, order_id, installer_id, day="2025-11-13")
        assign(client, make_order().id, installer_id, day="2025-11-20")
        
        response = client.get("/api/v1/assignments/", params={"start_date": "2025-11-14", "end_date": "2025-11-30"})
        assert [a["scheduled_date"] for a in response.json()] == ["2025-11-20"]
        
        response = client.get("/api/v1/assignments/", params={"start_date": "2025-11-30", "end_date": "2025-11-01"})
        assert response.status_code == 400
    
    def test_delete_reverts_order_and_keeps_history(self, client, order_id, installer_id):
        assignment_id = assign(client, order_id, installer_id).json()["id"]
        
        response = client.delete(f"/api/v1/assignments/{assignment_id}")
        assert response.status_code == 200
        assert client.get(f"/api/v1/orders/{order_id}").json()["status"] == "pending"
        
        history = client.get("/api/v1/assignment-history/", params={"order_number": "WO-API"}).json()
        assert [h["action"] for h in history] == ["deleted", "created"]
        assert all(h["assignment_id"] == assignment_id for h in history)
    
    def test_delete_without_revert(self, client, order_id, installer_id):
        assignment_id = assign(client, order_id, installer_id).json()["id"]
        client.delete(f"/api/v1/assignments/{assignment_id}", params={"revert_order_status": "false"})
        assert client.get(f"/api/v1/orders/{order_id}").json()["status"] == "assigned"
    
    def test_update_status(self, client, order_id, installer_id):
        assignment_id = assign(client, order_id, installer_id).json()["id"]
        response = client.put(f"/api/v1/assignments/{assignment_id}", json={"status": "in_progress"})
        assert response.status_code == 200
        assert response.json()["status"] == "in_progress"
        
        response = client.put(f"/api/v1/assignments/{assignment_id}", json={"status": "paused"})
        assert response.status_code == 422
    
    def test_reassign(self, client, make_installer, order_id, installer_id):
        assignment_id = assign(client, order_id, installer_id).json()["id"]
        other_installer = make_installer("Olga Other").id
        
        response = client.post(f"/api/v1/assignments/{assignment_id}/reassign", json={
            "installer_id": other_installer, "scheduled_start_time": "13:00", "scheduled_end_time": "15:00",
        })
        
        assert response.status_code == 200, response.text
        moved = response.json()
        assert (moved["installer_id"], moved["scheduled_start_time"]) == (other_installer, "13:00")
        history = client.get("/api/v1/assignment-history/", params={"action": "reassigned"}).json()
        assert history[0]["installer_name"] == "Olga Other"
        assert history[0]["notes"].startswith("Reassigned from Ivan Installer")
    
    def test_quick_assign(self, client, make_order, installer_id):
        target = make_order(appointment_date="Nov 13, 2025", appointment_time="10:00 AM").id
        response = client.post("/api/v1/assignments/quick-assign", json={"order_id": target, "installer_id": installer_id})
        assert response.status_code == 201
        assert (response.json()["scheduled_start_time"], response.json()["scheduled_end_time"]) == ("10:00", "12:00")
    
    def test_route_and_grid(self, client, order_id, installer_id):
        assign(client, order_id, installer_id)
        
        route = client.get("/api/v1/assignments/route", params={"installer_id": installer_id, "date": "2025-11-13"}).json()
        assert [(stop["sequence"], stop["order"]["address"]) for stop in route] == [(1, "5 Station Road")]
        
        grid = client.get("/api/v1/assignments/grid", params={"date": "2025-11-13"}).json()
        assert len(grid["time_slots"]) == 21
        assert grid["installers"][0]["installer"]["name"] == "Ivan Installer"
        assert grid["installers"][0]["slots"]["09:00"]["order_id"] == order_id
    
    def test_assignment_history_rejects_unknown_action(self, client):
        response = client.get("/api/v1/assignment-history/", params={"action": "exploded"})
        assert response.status_code == 400

class TestInstallerEndpoints:
    
    def test_installer_crud(self, client):
        response = client.post("/api/v1/installers/", json={"name": "  Nina New  ", "skills": "fibre"})
        assert response.status_code == 201
        installer = response.json()
        assert installer["name"] == "Nina New"
        
        response = client.put(f"/api/v1/installers/{installer['id']}", json={"is_active": 0})
        assert response.json()["is_active"] == 0
        assert client.get("/api/v1/installers/", params={"active_only": True}).json() == []
        
        assert client.delete(f"/api/v1/installers/{installer['id']}").status_code == 200
        assert client.get(f"/api/v1/installers/{installer['id']}").status_code == 404
    
    def test_blank_name_is_rejected(self, client):
        response = client.post("/api/v1/installers/", json={"name": "   "})
        assert response.status_code == 400
    
    def test_bulk_create(self, client):
        response = client.post("/api/v1/installers/bulk", json={"installers": [{"name": "A"}, {"name": "B"}]})
        assert response.status_code == 201
        assert [i["name"] for i in client.get("/api/v1/installers/").json()] == ["A", "B"]
    
    def test_cannot_delete_installer_with_assignments(self, client, order_id, installer_id):
        assign(client, order_id, installer_id)
        response = client.delete(f"/api/v1/installers/{installer_id}")
        assert response.status_code == 409
    
    def test_schedule(self, client, order_id, installer_id):
        assign(client, order_id, installer_id)
        schedule = client.get(f"/api/v1/installers/{installer_id}/schedule").json()
        assert [a["order_id"] for a in schedule] == [order_id]
