"""
Unit tests for authentication functionality
"""

import pytest

from scheduler.auth.auth_handler import get_current_user
from main import app

@pytest.fixture
def auth_client(client):
    """Client that resolves the caller from a real bearer token"""
    app.dependency_overrides.pop(get_current_user, None)
    return client

def signup(client, username, password="Secret123", **fields):
    user_data = {"username": username, "email": f"{username}@example.com", "password": password}
    user_data.update(fields)
    return client.post("/api/v1/auth/signup", json=user_data)

def login(client, username, password="Secret123"):
    response = client.post("/api/v1/auth/login", json={"username_or_email": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}

class TestUserRegistration:
    
    def test_first_user_is_admin(self, auth_client):
        first = signup(auth_client, "owner", name="Olive Owner")
        second = signup(auth_client, "dispatcher")
        
        assert first.status_code == 201
        assert first.json()["role"] == "admin"
        assert first.json()["name"] == "Olive Owner"
        assert second.json()["role"] == "user"
    
    def test_signup_duplicate_username(self, auth_client):
        signup(auth_client, "taken")
        response = signup(auth_client, "taken", email="other@example.com")
        assert response.status_code == 400
        assert "Username already registered" in response.json()["detail"]
    
    def test_signup_duplicate_email(self, auth_client):
        signup(auth_client, "first", email="same@example.com")
        response = signup(auth_client, "second", email="same@example.com")
        assert response.status_code == 400
        assert "Email already registered" in response.json()["detail"]
    
    def test_signup_invalid_password(self, auth_client):
        assert signup(auth_client, "weak", password="allletters").status_code == 422
        assert signup(auth_client, "short", password="a1").status_code == 422
    
    def test_signup_invalid_email(self, auth_client):
        assert signup(auth_client, "bademail", email="not-an-email").status_code == 422

class TestUserLogin:
    
    def test_login_with_username_and_email(self, auth_client):
        signup(auth_client, "loginuser")
        
        response = auth_client.post("/api/v1/auth/login", json={"username_or_email": "loginuser", "password": "Secret123"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 1800
        assert data["user"]["username"] == "loginuser"
        assert data["user"]["last_signed_in"] is not None
        
        response = auth_client.post("/api/v1/auth/login", json={"username_or_email": "LOGINUSER@example.com", "password": "Secret123"})
        assert response.status_code == 200
    
    def test_login_wrong_password(self, auth_client):
        signup(auth_client, "loginuser")
        response = auth_client.post("/api/v1/auth/login", json={"username_or_email": "loginuser", "password": "Wrong1234"})
        assert response.status_code == 401
        assert "Invalid username/email or password" in response.json()["detail"]
    
    def test_login_nonexistent_user(self, auth_client):
        response = auth_client.post("/api/v1/auth/login", json={"username_or_email": "nobody", "password": "Secret123"})
        assert response.status_code == 401

class TestAuthenticatedEndpoints:
    
    def test_get_current_user(self, auth_client):
        signup(auth_client, "authuser")
        headers = login(auth_client, "authuser")
        
        response = auth_client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["username"] == "authuser"
        
        assert auth_client.post("/api/v1/auth/logout", headers=headers).status_code == 200
    
    def test_unauthorized_access(self, auth_client):
        assert auth_client.get("/api/v1/auth/me").status_code in (401, 403)
        assert auth_client.get("/api/v1/orders/").status_code in (401, 403)
    
    def test_invalid_token(self, auth_client):
        response = auth_client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
    
    def test_role_from_token_gates_writes(self, auth_client):
        signup(auth_client, "owner")
        signup(auth_client, "viewer")
        headers = login(auth_client, "viewer")
        
        assert auth_client.get("/api/v1/orders/", headers=headers).status_code == 200
        response = auth_client.post(
            "/api/v1/orders/", headers=headers, json={"service_number": "SVC-1", "customer_name": "A"}
        )
        assert response.status_code == 403
    
    def test_history_attributes_changes_to_the_caller(self, auth_client):
        signup(auth_client, "owner", name="Olive Owner")
        headers = login(auth_client, "owner")
        
        order = auth_client.post(
            "/api/v1/orders/", headers=headers, json={"service_number": "SVC-1", "customer_name": "A"}
        ).json()
        history = auth_client.get(f"/api/v1/orders/{order['id']}/history", headers=headers).json()
        assert history[0]["user_name"] == "Olive Owner"

class TestUserManagement:
    
    def test_admin_manages_users(self, auth_client):
        signup(auth_client, "owner")
        viewer = signup(auth_client, "viewer").json()
        headers = login(auth_client, "owner")
        
        users = auth_client.get("/api/v1/auth/users", headers=headers).json()
        assert {u["username"] for u in users} == {"owner", "viewer"}
        
        response = auth_client.put(f"/api/v1/auth/users/{viewer['id']}/role", headers=headers, json={"role": "supervisor"})
        assert response.status_code == 200
        assert response.json()["role"] == "supervisor"
        
        response = auth_client.delete(f"/api/v1/auth/users/{viewer['id']}", headers=headers)
        assert response.status_code == 200
        assert len(auth_client.get("/api/v1/auth/users", headers=headers).json()) == 1
    
    def test_admin_cannot_demote_or_delete_self(self, auth_client):
        owner = signup(auth_client, "owner").json()
        headers = login(auth_client, "owner")
        
        response = auth_client.put(f"/api/v1/auth/users/{owner['id']}/role", headers=headers, json={"role": "user"})
        assert response.status_code == 400
        response = auth_client.delete(f"/api/v1/auth/users/{owner['id']}", headers=headers)
        assert response.status_code == 400
    
    def test_invalid_role(self, auth_client):
        owner = signup(auth_client, "owner").json()
        headers = login(auth_client, "owner")
        response = auth_client.put(f"/api/v1/auth/users/{owner['id']}/role", headers=headers, json={"role": "overlord"})
        assert response.status_code == 422
    
    def test_non_admin_is_forbidden(self, auth_client):
        signup(auth_client, "owner")
        signup(auth_client, "viewer")
        headers = login(auth_client, "viewer")
        assert auth_client.get("/api/v1/auth/users", headers=headers).status_code == 403
        assert auth_client.get("/api/v1/auth/activity", headers=headers).status_code == 403
    
    def test_admin_reads_activity_log(self, auth_client):
        signup(auth_client, "owner")
        viewer = signup(auth_client, "viewer").json()
        headers = login(auth_client, "owner")
        auth_client.delete(f"/api/v1/auth/users/{viewer['id']}", headers=headers)
        
        response = auth_client.get("/api/v1/auth/activity", headers=headers, params={"limit": 2})
        
        assert response.status_code == 200
        activity = response.json()
        assert len(activity) == 2
        assert (activity[0]["endpoint"], activity[0]["method"]) == (f"/api/v1/auth/users/{viewer['id']}", "DELETE")
        assert activity[1]["endpoint"] == "/api/v1/auth/login"
