"""
Pytest fixtures for test database, client, and seed data.

Each test gets its own SQLite file so concurrent sessions (separate
connections) really contend for the same rows. Redis is disabled; the grid
cache degrades to a no-op.
"""

import os

os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./turfbook_test.db")

from datetime import date, time, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from turfbook.main import app
from turfbook.db import session as db_session_module
from turfbook.db.base import Base
from turfbook.db.session import get_db
from turfbook.models.slot import Slot
from turfbook.models.turf import Turf
from turfbook.schemas.turf import PricingRules

OWNER_ID = "owner-1"

# A Wednesday well in the future, so force_regenerate applies
FUTURE_DATE = date.today() + timedelta(days=(2 - date.today().weekday()) % 7 + 28)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create tables in a fresh database file, dispose afterwards."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'turfbook.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class CommitFailsSession(AsyncSession):
    """Session whose COMMIT fails as if the database connection dropped."""

    async def commit(self):
        raise OperationalError("COMMIT", {}, ConnectionError("server closed the connection unexpectedly"))


@pytest_asyncio.fixture
async def commit_fails(client, test_engine, monkeypatch):
    """Serve requests through the real get_db, on sessions that cannot commit."""
    monkeypatch.setattr(
        db_session_module,
        "AsyncSessionLocal",
        async_sessionmaker(test_engine, class_=CommitFailsSession, expire_on_commit=False),
    )
    app.dependency_overrides.pop(get_db, None)
    yield client


def make_turf(**overrides) -> Turf:
    fields = dict(
        owner_id=OWNER_ID,
        name="Test Arena",
        city="Pune",
        open_time=time(6, 0),
        close_time=time(23, 0),
        slot_duration_minutes=60,
        number_of_nets=1,
        days_open=["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"],
        pricing_rules=PricingRules.flat(800, 1).model_dump(mode="json"),
        public_holidays=[],
        status="OPEN",
    )
    fields.update(overrides)
    return Turf(**fields)


@pytest_asyncio.fixture
async def test_turf(db_session: AsyncSession) -> Turf:
    """Single-net turf open 06:00-23:00 every day at a flat 800."""
    turf = make_turf()
    db_session.add(turf)
    await db_session.commit()
    await db_session.refresh(turf)
    return turf


@pytest_asyncio.fixture
async def test_slot(db_session: AsyncSession, test_turf: Turf) -> Slot:
    """An AVAILABLE 18:00-19:00 slot on net 1."""
    slot = Slot(
        turf_id=test_turf.id,
        net_number=1,
        date=FUTURE_DATE,
        start_time=time(18, 0),
        end_time=time(19, 0),
        price=800,
        price_type="WEEKDAY_EVENING",
        status="AVAILABLE",
    )
    db_session.add(slot)
    await db_session.commit()
    await db_session.refresh(slot)
    return slot


@pytest_asyncio.fixture
async def blocked_slot(db_session: AsyncSession, test_turf: Turf) -> Slot:
    """A slot the owner has taken off sale."""
    slot = Slot(
        turf_id=test_turf.id,
        net_number=1,
        date=FUTURE_DATE,
        start_time=time(7, 0),
        end_time=time(8, 0),
        price=800,
        price_type="WEEKDAY_MORNING",
        status="BLOCKED",
        blocked_by=OWNER_ID,
        block_reason="Maintenance",
    )
    db_session.add(slot)
    await db_session.commit()
    await db_session.refresh(slot)
    return slot
