"""
Shared fixtures: an in-memory SQLite database, an authenticated test
client and a capture of owner notifications
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scheduler.auth.auth_handler import RequestContext, get_current_user
from scheduler.database import Base, enable_sqlite_foreign_keys, get_db
from scheduler.models.installer import Installer
from scheduler.models.order import Order
from scheduler.routers import assignment_history, assignments, auth, installers, notes, orders, time_slots
from scheduler.services import notifications
from scheduler.services.storage import LocalStorageProvider, get_storage
import main
from main import app

SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN = RequestContext(user_id=1, user_name="Admin Tester", role="admin", email="admin@example.com")

@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    """Every (title, content) handed to the owner channel"""
    sent = []
    
    async def fake_notify_owner(title, content):
        sent.append((title, content))
        return True
    
    monkeypatch.setattr(notifications, "notify_owner", fake_notify_owner)
    return sent

@pytest.fixture(autouse=True)
def no_rate_limits():
    limiters = [main.limiter] + [
        module.limiter
        for module in (assignment_history, assignments, auth, installers, notes, orders, time_slots)
    ]
    for limiter in limiters:
        limiter.enabled = False
    yield
    for limiter in limiters:
        limiter.enabled = True

@pytest.fixture
def current_user():
    """Mutable caller identity; tests change .role to act as someone else"""
    return RequestContext(user_id=ADMIN.user_id, user_name=ADMIN.user_name, role=ADMIN.role, email=ADMIN.email)

@pytest.fixture
def client(current_user, tmp_path):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_storage] = lambda: LocalStorageProvider(
        base_dir=str(tmp_path), public_base_url="http://testserver"
    )
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def make_order(db):
    counter = {"n": 0}
    
    def _make(**fields):
        counter["n"] += 1
        data = {
            "order_number": f"WO-{counter['n']:04d}",
            "service_number": f"SVC-{counter['n']:04d}",
            "customer_name": "Jane Customer",
            "address": "1 Main Street",
            "appointment_date": "2025-11-13",
            "appointment_time": "9:00 AM",
            "status": "pending",
        }
        data.update(fields)
        order = Order(**data)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    
    return _make

@pytest.fixture
def make_installer(db):
    def _make(name="Ivan Installer", **fields):
        installer = Installer(name=name, **fields)
        db.add(installer)
        db.commit()
        db.refresh(installer)
        return installer
    
    return _make
