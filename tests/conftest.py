"""
Pytest fixtures for the file tracking test suite.

Provides:
- An in-memory SQLite database (StaticPool) with fresh tables per test
- A user factory and a standard cast of department users
- A FastAPI TestClient bound to the test session
- Bearer-token headers for any user
"""

import os

# Settings are read at import time
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ENABLE_EMAIL_NOTIFICATIONS"] = "false"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ.setdefault("NOTIFICATION_TTL_DAYS", "30")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filetrack.auth.security import create_access_token, get_password_hash
from filetrack.db import Base, get_db, utcnow
from filetrack.main import app
from filetrack.models.models import User
from filetrack.schemas.files import Department, FileCreate, Priority
from filetrack.schemas.forwards import ForwardCreate
from filetrack.services.workflow import ForwardingWorkflow


# Hashing is slow by design; every test user shares one password hash
_PASSWORD = "secret123"
_PASSWORD_HASH = get_password_hash(_PASSWORD)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(name: str, department: str = "IT", role: str = "user", email: str = None, created_at=None) -> User:
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@filetrack.io",
            password_hash=_PASSWORD_HASH,
            department=department,
            role=role,
            is_active=True,
            created_at=created_at or utcnow(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def people(make_user):
    """IT requester, HR admin + employees, IT admin and a superadmin."""
    return {
        "uma": make_user("Uma", "IT", "user"),
        "ian": make_user("Ian", "IT", "admin"),
        "hana": make_user("Hana", "HR", "admin"),
        "alice": make_user("Alice", "HR", "user"),
        "bob": make_user("Bob", "HR", "user"),
        "sam": make_user("Sam", "Administration", "superadmin"),
    }


@pytest.fixture
def workflow(db):
    return ForwardingWorkflow(db)


@pytest.fixture
def it_file(workflow, people):
    return workflow.create_file(people["uma"], FileCreate(title="Server purchase", department=Department.it))


@pytest.fixture
def pending_forward(workflow, people, it_file):
    return workflow.create_forward(
        people["uma"],
        ForwardCreate(
            file_code=it_file.code,
            recipient_department=Department.hr,
            recipient_name="Alice",
            priority=Priority.critical,
            sent_through="Peon",
        ),
    )


@pytest.fixture
def auth_header():
    def _header(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _header


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
