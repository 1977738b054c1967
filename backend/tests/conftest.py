"""
DevCamper Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the test suite.
How:   Environment overrides are applied before any devcamper import, so the
       settings singleton and the module-level engine never point at a real
       database or geocoding key.

Fixtures:
    ├── mock_db_session: AsyncMock session for pure service unit tests
    ├── db_engine / db_session: in-memory SQLite (aiosqlite) with all tables
    ├── seed_bootcamps / seed_courses: insert rows with distinct created_at
    ├── fake_geocoder: in-memory Geocoder patched into BootcampService
    └── test_client: httpx AsyncClient over ASGITransport, sharing db_engine
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEOCODER_API_KEY"] = "test-key-not-real"
os.environ["DB_CREATE_TABLES"] = "false"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import List
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from devcamper.database import Base, get_db_session
from devcamper.exceptions import ValidationError
from devcamper.models import Bootcamp, Course
from devcamper.services.geocoder_base import GeocodeResult, Geocoder

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

# Known addresses for the fake geocoder: (latitude, longitude, city, state, zipcode)
KNOWN_PLACES = {
    "233 Bay State Rd Boston MA 02215": (42.350846, -71.10343, "Boston", "MA", "02215"),
    "02215": (42.347, -71.1025, "Boston", "MA", "02215"),
    "220 Pawtucket St, Lowell, MA 01854": (42.6495, -71.3270, "Lowell", "MA", "01854"),
    "85 South Prospect Street Burlington VT 05405": (44.4779, -73.1965, "Burlington", "VT", "05405"),
    "45 Upper College Rd Kingston RI 02881": (41.4807, -71.5228, "Kingston", "RI", "02881"),
    "10001": (40.7506, -73.9972, "New York", "NY", "10001"),
}


class FakeGeocoder(Geocoder):
    """Resolves KNOWN_PLACES; any other address has no match."""

    def __init__(self):
        self.calls: List[str] = []

    async def geocode(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        if address not in KNOWN_PLACES:
            raise ValidationError(message=f"Could not geocode address '{address}'", field="address")
        lat, lng, city, state, zipcode = KNOWN_PLACES[address]
        return GeocodeResult(
            latitude=lat,
            longitude=lng,
            formatted_address=f"{city}, {state} {zipcode}, US",
            city=city,
            state_code=state,
            zipcode=zipcode,
            country_code="US",
        )

    def health_status(self) -> str:
        return "available"


# ══════════════════════════════════════════════════════════════════════════
# Mocked Session
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """AsyncMock standing in for AsyncSession (no database involved)."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.get = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps the single SQLite connection alive, so every session
    created from this engine sees the same tables and rows.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def seed_bootcamps(db_session):
    """
    Insert `count` bootcamps; bootcamp i is created i minutes after
    BASE_TIME and costs 1000 * (i + 1).

    Usage:
        bootcamps = await seed_bootcamps(30)
        bootcamps = await seed_bootcamps(3, housing=True)
    """

    async def _seed(count: int, **overrides) -> List[Bootcamp]:
        bootcamps = []
        for i in range(count):
            fields = {
                "name": f"Bootcamp {i:02d}",
                "description": f"Description of bootcamp {i}",
                "careers": ["Web Development"],
                "average_cost": 1000.0 * (i + 1),
                "created_at": BASE_TIME + timedelta(minutes=i),
            }
            fields.update(overrides)
            bootcamps.append(Bootcamp(**fields))
        db_session.add_all(bootcamps)
        await db_session.commit()
        return bootcamps

    return _seed


@pytest.fixture
def seed_courses(db_session):
    """Insert one course per (bootcamp, title) pair; tuition grows with order."""

    async def _seed(bootcamp: Bootcamp, titles: List[str], **overrides) -> List[Course]:
        courses = []
        for i, title in enumerate(titles):
            fields = {
                "title": title,
                "description": f"{title} course",
                "weeks": "8",
                "tuition": 5000.0 + 1000 * i,
                "minimum_skill": "beginner",
                "bootcamp_id": bootcamp.id,
                "created_at": BASE_TIME + timedelta(minutes=i),
            }
            fields.update(overrides)
            courses.append(Course(**fields))
        db_session.add_all(courses)
        await db_session.commit()
        return courses

    return _seed


# ══════════════════════════════════════════════════════════════════════════
# Geocoder and API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_geocoder():
    geocoder = FakeGeocoder()
    with patch("devcamper.services.bootcamp_service.geocoder_service", geocoder):
        yield geocoder


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTP client for the FastAPI app, with get_db_session overridden to use
    the test engine (same commit/rollback behaviour as production).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from devcamper.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
