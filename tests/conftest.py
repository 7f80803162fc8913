import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()

# Settings are read at import time; keep tests off any real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-medclinic-tests")
os.environ.setdefault("LOG_FORMAT", "console")

from medclinic.core.access_control import Role  # noqa: E402
from medclinic.core.security import create_access_token, get_password_hash  # noqa: E402
from medclinic.database import get_db  # noqa: E402
from medclinic.main import app  # noqa: E402
from medclinic.models import departments, doctors, metadata, patients, users  # noqa: E402

# Test database URL - in-memory SQLite unless TEST_DATABASE_URL is set
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

TEST_PASSWORD = "correct-horse-battery"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {}


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh schema for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, **_engine_options(TEST_DATABASE_URL))
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[dict]]:
    """Factory inserting a user with the given role."""

    async def _make_user(role: Role | str = Role.STAFF, is_active: bool = True, **overrides) -> dict:
        role_value = role.value if isinstance(role, Role) else role
        values = {
            "id": uuid4(),
            "email": f"{role_value}-{uuid4().hex[:8]}@example.com",
            "full_name": f"Test {role_value.title()}",
            "password_hash": get_password_hash(TEST_PASSWORD),
            "role": role_value,
            "is_active": is_active,
            **overrides,
        }
        await db_session.execute(insert(users).values(**values))
        await db_session.commit()
        return values

    return _make_user


def _bearer(user: dict) -> dict:
    token = create_access_token(data={"sub": str(user["id"])}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_password() -> str:
    """Plain-text password of every user made by ``make_user``."""
    return TEST_PASSWORD


@pytest.fixture
def headers_for() -> Callable[[dict], dict]:
    """Build authorization headers carrying an access token for a user."""
    return _bearer


@pytest.fixture
async def test_user(make_user) -> dict:
    """A receptionist: books and edits appointments but cannot delete them."""
    return await make_user(Role.RECEPTIONIST)


@pytest.fixture
def auth_headers(test_user: dict) -> dict:
    """Create authentication headers for testing protected endpoints."""
    return _bearer(test_user)


@pytest.fixture
async def admin_headers(make_user) -> dict:
    return _bearer(await make_user(Role.ADMIN))


@pytest.fixture
async def accountant_headers(make_user) -> dict:
    return _bearer(await make_user(Role.ACCOUNTANT))


@pytest.fixture
async def department(db_session: AsyncSession) -> dict:
    """An active department."""
    values = {"id": uuid4(), "name": "General Medicine", "description": "Outpatient care"}
    await db_session.execute(insert(departments).values(**values))
    await db_session.commit()
    return values


@pytest.fixture
def full_week_availability() -> list[dict]:
    return [
        {"day": day, "start_time": "08:00", "end_time": "18:00", "is_available": True}
        for day in WEEKDAYS
    ]


@pytest.fixture
def make_doctor(db_session: AsyncSession, department: dict, full_week_availability: list[dict]):
    """Factory inserting a doctor who works 08:00-18:00 every day."""

    async def _make_doctor(**overrides) -> dict:
        values = {
            "id": uuid4(),
            "first_name": "Ada",
            "last_name": f"Okafor-{uuid4().hex[:4]}",
            "email": f"doctor-{uuid4().hex[:8]}@example.com",
            "department_id": department["id"],
            "specializations": ["General Practice"],
            "availability": full_week_availability,
            **overrides,
        }
        await db_session.execute(insert(doctors).values(**values))
        await db_session.commit()
        return values

    return _make_doctor


@pytest.fixture
async def doctor(make_doctor) -> dict:
    return await make_doctor()


@pytest.fixture
def make_patient(db_session: AsyncSession):
    """Factory inserting a patient."""

    async def _make_patient(**overrides) -> dict:
        values = {
            "id": uuid4(),
            "first_name": "Grace",
            "last_name": "Hopper",
            "gender": "female",
            "date_of_birth": date(1985, 12, 9),
            "phone": f"+2547{uuid4().int % 10**8:08d}",
            "email": f"patient-{uuid4().hex[:8]}@example.com",
            **overrides,
        }
        await db_session.execute(insert(patients).values(**values))
        await db_session.commit()
        return values

    return _make_patient


@pytest.fixture
async def patient(make_patient) -> dict:
    return await make_patient()


@pytest.fixture
def future_date() -> date:
    """A booking date comfortably in the future."""
    return date.today() + timedelta(days=7)


@pytest.fixture
def booking(patient: dict, doctor: dict, department: dict, future_date: date) -> dict:
    """JSON body of a valid booking request."""
    return {
        "patient_id": str(patient["id"]),
        "doctor_id": str(doctor["id"]),
        "department_id": str(department["id"]),
        "appointment_date": future_date.isoformat(),
        "appointment_time": "10:00",
        "symptoms": ["fever"],
    }
