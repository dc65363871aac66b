"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all DoseRound tests.
Fixtures include database sessions, test clients, sample reminders and a fixed clock.
"""

import os
import sys
from datetime import datetime
from typing import Generator, Dict, Any, List

# Keep the application's own engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REMINDER_SOURCE", "local")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, create_db_engine
from models import DoseStatus, MedicineReminder
from services.reminder_store import SqlReminderSource
from services.schedule_view import ScheduleViewRegistry
from api.deps import get_view_registry
from tools.reminder_grouper import ReminderRecord
from app import app


# Wall clock used by every test that needs "now"
FIXED_NOW = datetime(2024, 1, 1, 10, 0)
TIMELINE_ID = 7


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_db_engine("sqlite:///:memory:")

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def reminder_source(db_session: Session) -> SqlReminderSource:
    """Local reminder source on the test session, with today pinned"""
    return SqlReminderSource(db=db_session, user_id=42, today=FIXED_NOW.date())


@pytest.fixture
def view_registry(reminder_source: SqlReminderSource) -> ScheduleViewRegistry:
    """View registry using the test source and the fixed clock"""
    return ScheduleViewRegistry(reminder_source, clock=lambda: FIXED_NOW)


@pytest.fixture(scope="function")
def client(view_registry: ScheduleViewRegistry) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with the view registry overridden"""
    app.dependency_overrides[get_view_registry] = lambda: view_registry

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def sample_reminder_rows() -> List[Dict[str, Any]]:
    """
    Reminders for TIMELINE_ID across three days:
    two morning doses and one evening dose today, one completed dose
    yesterday and one dose tomorrow.
    """
    return [
        {
            "medicine_id": 101,
            "medicine_name": "paracetamol",
            "medicine_type": "Tablets",
            "dosage": "500",
            "medication_time": "08:00 - 09:00",
            "dosage_time": datetime(2024, 1, 1, 8, 0),
            "day": "2/3",
        },
        {
            "medicine_id": 102,
            "medicine_name": "AMOXICILLIN",
            "medicine_type": "Capsules",
            "dosage": "250",
            "medication_time": "08:00 - 09:00",
            "dosage_time": datetime(2024, 1, 1, 8, 0),
            "day": "2/3",
        },
        {
            "medicine_id": 101,
            "medicine_name": "paracetamol",
            "medicine_type": "Tablets",
            "dosage": "500",
            "medication_time": "20:00 - 21:00",
            "dosage_time": datetime(2024, 1, 1, 20, 0),
            "day": "2/3",
        },
        {
            "medicine_id": 101,
            "medicine_name": "paracetamol",
            "medicine_type": "Tablets",
            "dosage": "500",
            "medication_time": "08:00 - 09:00",
            "dosage_time": datetime(2023, 12, 31, 8, 0),
            "dose_status": DoseStatus.COMPLETED.value,
            "given_time": datetime(2023, 12, 31, 8, 12),
            "day": "1/3",
        },
        {
            "medicine_id": 101,
            "medicine_name": "paracetamol",
            "medicine_type": "Tablets",
            "dosage": "500",
            "medication_time": "08:00 - 09:00",
            "dosage_time": datetime(2024, 1, 2, 8, 0),
            "day": "3/3",
        },
    ]


@pytest.fixture
def seeded_reminders(db_session: Session, sample_reminder_rows: List[Dict]) -> List[MedicineReminder]:
    """Insert the sample reminders and return the rows"""
    rows = [MedicineReminder(timeline_id=TIMELINE_ID, **data) for data in sample_reminder_rows]
    db_session.add_all(rows)
    db_session.commit()
    for row in rows:
        db_session.refresh(row)
    return rows


@pytest.fixture
def make_reminder():
    """Factory for in-memory reminder records"""
    def _make(
        id: int,
        dosage_time: str = "2024-01-01T09:00:00",
        dose_status: DoseStatus = DoseStatus.PENDING,
        medication_time: str = "09:00 - 10:00",
        **kwargs
    ) -> ReminderRecord:
        return ReminderRecord(
            id=id,
            dosage_time=dosage_time,
            dose_status=dose_status,
            medication_time=medication_time,
            medicine_id=kwargs.pop("medicine_id", 100 + id),
            medicine_name=kwargs.pop("medicine_name", f"medicine {id}"),
            **kwargs
        )
    return _make


# ==================== UTILITY FIXTURES ====================

@pytest.fixture
def fixed_now() -> datetime:
    """Return the fixed wall clock used across tests"""
    return FIXED_NOW


@pytest.fixture
def timeline_id() -> int:
    """Timeline the sample reminders belong to"""
    return TIMELINE_ID


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
