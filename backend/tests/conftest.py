"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time: configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EVENTS_ENABLED"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, MenuItem
from rest_api.services.domain import SessionService
from shared.infrastructure.db import get_db
from shared.infrastructure.events import EventPublisher, get_event_publisher


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingPublisher(EventPublisher):
    """Keeps published events in memory instead of sending them to Redis."""

    def __init__(self):
        self.published: list[tuple] = []

    async def publish(self, event, channels):
        self.published.append((event, list(channels)))

    def types(self) -> list[str]:
        return [event.type for event, _ in self.published]

    def channels_for(self, event_type: str) -> list[str]:
        for event, channels in self.published:
            if event.type == event_type:
                return channels
        return []


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_db_session(db_session):
    """
    A second session on the same database, standing in for a concurrent request.
    Commits made here are visible to db_session on its next read.
    """
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture(scope="function")
def client(db_session, publisher):
    """
    Create a test client with database session and publisher overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def menu_items(db_session):
    """A small menu: a shareable dish, a personal dish, a drink and an unavailable item."""
    items = {
        "parrillada": MenuItem(name="Parrillada", price=Decimal("135.00"), is_available=True),
        "empanadas": MenuItem(name="Empanadas", price=Decimal("10.00"), is_available=True),
        "pisco": MenuItem(name="Pisco sour", price=Decimal("5.50"), is_available=True),
        "off_menu": MenuItem(name="Centolla", price=Decimal("80.00"), is_available=False),
    }
    db_session.add_all(items.values())
    db_session.commit()
    for item in items.values():
        db_session.refresh(item)
    return items


@pytest.fixture
def table_session(db_session):
    """An active session with three diners."""
    return SessionService(db_session).create("T1", ["Ana", "Beto", "Carla"])
