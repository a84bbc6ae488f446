"""Service test fixtures: async DB, seeded events, ParticipationManager, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Foreign keys are enforced, so unknown users and CASCADE / SET NULL behave as on Postgres
    - Seeding and assertions use their own short-lived sessions, never the manager's
    - get_db and get_participation_manager overridden to use the test DB
    - db_manager patched so the readiness check sees the test engine

Design Decisions:
    - SQLite in-memory: fast, no external dependency; unique indexes behave like
      Postgres for NULL gate columns (NULLs never collide)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from gatehouse.api.dependencies import get_participation_manager
from gatehouse.core.domain_types import EventId, GateId, GateRole
from gatehouse.db.base import Base
from gatehouse.infrastructure.database import (
    DatabaseSessionManager, enable_sqlite_foreign_keys, get_db,
)
import gatehouse.infrastructure.database as db_module
from gatehouse.main import app
from gatehouse.models.event import Event
from gatehouse.models.event_gate import EventGate
from gatehouse.models.event_participant import EventParticipant
from gatehouse.models.user import User
from gatehouse.services.participation_manager import ParticipationManager


@dataclass
class SeededEvent:
    """Ids of a seeded event and its gates, keyed by gate label."""
    id: EventId
    departure: dict[str, GateId] = field(default_factory=dict)
    arrival: dict[str, GateId] = field(default_factory=dict)

    def gate(self, label: str) -> GateId:
        return self.departure.get(label) or self.arrival[label]


class Seeder:
    """Inserts collaborator-owned rows (users, events, gates) the core only reads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def users(self, *user_ids: str, role: str | None = None) -> None:
        async with self._session_factory() as db:
            for user_id in user_ids:
                db.add(User(id=user_id, name=f"Pilot {user_id}", role=role))
            await db.commit()

    async def event(
        self,
        departure: tuple[str, ...] = ("A1", "A2"),
        arrival: tuple[str, ...] = ("B1", "B2"),
        status: str = "published",
    ) -> SeededEvent:
        async with self._session_factory() as db:
            event = Event(
                title="Friday Night Ops",
                status=status,
                departure_icao="KJFK",
                arrival_icao="EGLL",
                departure_time=datetime.now(timezone.utc) + timedelta(days=2),
                flight_time=420,
            )
            db.add(event)
            await db.flush()
            seeded = SeededEvent(id=EventId(event.id))
            for role, labels, target in (
                (GateRole.DEPARTURE, departure, seeded.departure),
                (GateRole.ARRIVAL, arrival, seeded.arrival),
            ):
                for label in labels:
                    gate = EventGate(
                        event_id=event.id, gate_number=label,
                        airport_type=role.value,
                    )
                    db.add(gate)
                    await db.flush()
                    target[label] = GateId(gate.id)
            await db.commit()
            return seeded

    async def participants(self, event_id: UUID) -> dict[str, EventParticipant]:
        """Current participant rows keyed by user id, read in a fresh session."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(EventParticipant).where(EventParticipant.event_id == event_id),
            )
            return {p.user_id: p for p in result.scalars().all()}


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def seed(test_session_factory) -> Seeder:
    return Seeder(test_session_factory)


@pytest.fixture
def seeder_for():
    """Seeder constructor, for tests that bring their own database."""
    return Seeder


@pytest.fixture
def manager(test_session_factory) -> ParticipationManager:
    return ParticipationManager(test_session_factory, max_attempts=3)


@pytest.fixture
async def event(seed) -> SeededEvent:
    """Published event with departure gates A1, A2 and arrival gates B1, B2."""
    await seed.users("p1", "p2", "p3", "p4")
    await seed.users("staff", role="[events]")
    await seed.users("fleet-staff", role="[fleet]")
    return await seed.event()


@pytest.fixture
async def client(test_engine, test_session_factory, manager):
    """FastAPI test client with DB and manager dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_participation_manager] = lambda: manager

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
