import os
from collections.abc import AsyncGenerator
from datetime import date, datetime

# Settings are read at import time; point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()

from app.core.clock import FixedClock
from app.database import get_db
from app.dependencies import get_clock, get_notifier
from app.main import app
from app.models import metadata
from app.services.review_service import ReviewService
from app.services.scheduling_service import SchedulingService
from app.services.user_service import PatientService, UserService

# One shared in-memory database per test; StaticPool keeps the single
# connection alive between sessions
TEST_DATABASE_URL = "sqlite+aiosqlite://"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Monday morning; every test date is relative to this instant
NOW = datetime(2025, 5, 26, 9, 0)
TODAY = NOW.date()

FRONTDESK_ID = "frontdesk-1"
ADMIN_ID = "admin-1"
DOCTOR_ID = "doctor-1"
OTHER_DOCTOR_ID = "doctor-2"
PATIENT_ID = "patient-1"
OTHER_PATIENT_ID = "patient-2"


class RecordingNotifier:
    """Notifier that keeps every email in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send_email(self, address: str, subject: str, body: str) -> None:
        self.sent.append((address, subject, body))

    @property
    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]


class FailingNotifier:
    """Notifier whose mail server is always down."""

    async def send_email(self, address: str, subject: str, body: str) -> None:
        raise ConnectionError("SMTP server unavailable")


class FailingAudit:
    """Audit sink that always fails."""

    async def record_event(self, event) -> None:
        raise RuntimeError("audit store unavailable")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session with fresh tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> dict:
    """Actors and patient contacts used across the workflow tests."""
    await UserService.create_user(db_session, FRONTDESK_ID, "desk@clinic.test", "frontdesk", "Front Desk")
    await UserService.create_user(db_session, ADMIN_ID, "admin@clinic.test", "admin", "Admin")
    await UserService.create_user(db_session, DOCTOR_ID, "house@clinic.test", "doctor", "Dr. House")
    await UserService.create_user(db_session, OTHER_DOCTOR_ID, "grey@clinic.test", "doctor", "Dr. Grey")
    await UserService.create_user(db_session, PATIENT_ID, "alice@mail.test", "patient", "Alice")
    await UserService.create_user(db_session, OTHER_PATIENT_ID, "bob@mail.test", "patient", "Bob")
    await PatientService.create_patient(db_session, PATIENT_ID, "alice@mail.test", "Alice", "+15550001")
    await PatientService.create_patient(db_session, OTHER_PATIENT_ID, "bob@mail.test", "Bob", "+15550002")
    return {
        "frontdesk": FRONTDESK_ID,
        "admin": ADMIN_ID,
        "doctor": DOCTOR_ID,
        "other_doctor": OTHER_DOCTOR_ID,
        "patient": PATIENT_ID,
        "other_patient": OTHER_PATIENT_ID,
    }


@pytest.fixture
def scheduling(db_session, clock, notifier, seeded) -> SchedulingService:
    return SchedulingService(db_session, clock=clock, notifier=notifier)


@pytest.fixture
def review(db_session, clock, notifier, seeded) -> ReviewService:
    return ReviewService(db_session, clock=clock, notifier=notifier)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, clock, notifier, seeded) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_appointment_data() -> dict:
    """Frontdesk booking for tomorrow at 10:00."""
    return {
        "patient_id": PATIENT_ID,
        "doctor_id": DOCTOR_ID,
        "appointment_date": date(2025, 5, 27).isoformat(),
        "time": "10:00",
        "type": "Consultation",
        "reason": "Regular checkup",
    }
