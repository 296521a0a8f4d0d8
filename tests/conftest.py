"""Pytest configuration and fixtures."""
from __future__ import annotations

import os

# Set test environment before the application modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-for-ci")
os.environ.setdefault("STATUS_TRANSITION_MODE", "permissive")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from estate_crm.api.app import app
from estate_crm.api.deps import get_db
from estate_crm.core.auth import create_access_token, hash_password
from estate_crm.core.db import Base
from estate_crm.core.models import (
    AgentDetails,
    Commission,
    Lead,
    Property,
    PropertyVisit,
    User,
)

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def engine():
    """Create a test database engine."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture(scope="session")
def tables(engine):
    """Create all tables for testing."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(engine, tables) -> Session:
    """
    Returns a SQLAlchemy session for testing.

    Each test gets a fresh transaction that is rolled back after the test.
    """
    connection = engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=connection)
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db_session):
    """TestClient whose requests share the test's session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def _make_user(session: Session, email: str, role: str, first: str, last: str, **kwargs) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(TEST_PASSWORD),
        first_name=first,
        last_name=last,
        phone="9876543210",
        role=role,
        is_active=kwargs.pop("is_active", True),
    )
    if role == "AGENT":
        user.agent_details = AgentDetails(status="ACTIVE")
    session.add(user)
    session.flush()
    return user


@pytest.fixture
def admin_user(db_session) -> User:
    return _make_user(db_session, "admin@example.com", "ADMIN", "Asha", "Admin")


@pytest.fixture
def agent_user(db_session) -> User:
    return _make_user(db_session, "agent@example.com", "AGENT", "Ravi", "Kumar")


@pytest.fixture
def other_agent(db_session) -> User:
    return _make_user(db_session, "other.agent@example.com", "AGENT", "Meera", "Shah")


@pytest.fixture
def client_user(db_session) -> User:
    return _make_user(db_session, "client@example.com", "CLIENT", "Carl", "Client")


def bearer(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return bearer(admin_user)


@pytest.fixture
def agent_headers(agent_user) -> Dict[str, str]:
    return bearer(agent_user)


@pytest.fixture
def other_agent_headers(other_agent) -> Dict[str, str]:
    return bearer(other_agent)


@pytest.fixture
def client_headers(client_user) -> Dict[str, str]:
    return bearer(client_user)


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_property(db_session) -> Callable[..., Property]:
    """Create a Property owned by the given agent."""
    def factory(agent: User, **kwargs) -> Property:
        values = {
            "title": "Sea View Apartment",
            "type": "APARTMENT",
            "status": "AVAILABLE",
            "address": "12 Marine Drive",
            "city": "Mumbai",
            "country": "India",
            "price": 5000000.0,
        }
        values.update(kwargs)
        prop = Property(agent_id=agent.id, **values)
        db_session.add(prop)
        db_session.flush()
        return prop

    return factory


@pytest.fixture
def make_lead(db_session) -> Callable[..., Lead]:
    """Create a Lead assigned to the given agent (or unassigned)."""
    def factory(agent: User | None, **kwargs) -> Lead:
        values = {
            "first_name": "Priya",
            "last_name": "Nair",
            "phone": "9123456789",
            "type": "BUYER",
            "source": "WEBSITE",
            "status": "NEW",
        }
        values.update(kwargs)
        lead = Lead(assigned_agent_id=agent.id if agent else None, **values)
        db_session.add(lead)
        db_session.flush()
        return lead

    return factory


@pytest.fixture
def make_visit(db_session) -> Callable[..., PropertyVisit]:
    def factory(lead: Lead, prop: Property, agent: User, **kwargs) -> PropertyVisit:
        values = {
            "scheduled_at": datetime.now(timezone.utc) + timedelta(days=1),
            "status": "SCHEDULED",
        }
        values.update(kwargs)
        visit = PropertyVisit(
            lead_id=lead.id,
            property_id=prop.id,
            assigned_agent_id=agent.id,
            **values,
        )
        db_session.add(visit)
        db_session.flush()
        return visit

    return factory


@pytest.fixture
def make_commission(db_session) -> Callable[..., Commission]:
    def factory(agent: User, prop: Property, percentage: float = 2.0, **kwargs) -> Commission:
        values = {
            "percentage": percentage,
            "property_price": prop.price,
            "commission_amount": prop.price * percentage / 100,
            "status": "PENDING",
        }
        values.update(kwargs)
        commission = Commission(agent_id=agent.id, property_id=prop.id, **values)
        db_session.add(commission)
        db_session.flush()
        return commission

    return factory
