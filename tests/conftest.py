"""Pytest fixtures and configuration for FocusFlow tests."""

import os

# Keep the module-level engine off the filesystem.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from focusflow.database.database import Base, get_db
from focusflow.database.change_feed import ChangeFeed
from focusflow.database.repository import TaskRepository
from focusflow.database import models  # noqa: F401
from focusflow.models.recurrence import RecurrenceRule, RecurrenceKind, IntervalUnit
from focusflow.models.task import Task, TaskKind, TaskState


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 2024-01-01 is a Monday
MONDAY_10AM = datetime(2024, 1, 1, 10, 0, 0)


@pytest.fixture
def now():
    """Fixed reference instant (Monday 2024-01-01 10:00)."""
    return MONDAY_10AM


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def change_feed():
    return ChangeFeed()


@pytest.fixture
def task_repository(db_session: Session, change_feed):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session, change_feed)


@pytest.fixture
def sample_task_base(now):
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "title": "Test Task",
        "description": "Test description",
        "raw_text": "Test Task",
        "kind": TaskKind.SINGLE,
        "priority": 2,
        "state": TaskState.ACTIVE,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample single Task for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def daily_rule():
    return RecurrenceRule(frequency="daily", kind=RecurrenceKind.CADENCE, interval=1, unit=IntervalUnit.DAY)


@pytest.fixture
def habit_task(sample_task_base, daily_rule, now):
    """Create a daily habit due tomorrow morning."""
    return Task(
        **{
            **sample_task_base,
            "title": "Meditate",
            "raw_text": "Meditate daily",
            "kind": TaskKind.HABIT,
            "recurrence_rule": daily_rule,
            "next_due_at": now + timedelta(hours=23),
        }
    )


@pytest.fixture
def test_client(db_session: Session):
    """Create a FastAPI test client with overridden database dependency.

    Background enrichment reuses the test session and runs rule-based only.
    """
    from focusflow.api.app import app, get_parser, get_session_factory

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: (lambda: db_session)
    app.dependency_overrides[get_parser] = lambda: None

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
