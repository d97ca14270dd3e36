"""Service test fixtures — async DB, seeded entities, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so readiness probes hit the test engine
    - Notifications captured by RecordingNotifier, never sent

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service tests
      (row locks are a no-op there; the per-worker asyncio lock still applies)
    - Admin identity injected through a Settings override, not the environment
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from vouch.api.dependencies import get_notifier
from vouch.config import Settings, get_settings
from vouch.core.domain_types import BookingStatus, VerificationMethod
from vouch.db.base import Base
from vouch.infrastructure.database import get_db, DatabaseSessionManager
from vouch.infrastructure.worker_locks import WorkerLockRegistry
from vouch.models.booking import Booking
from vouch.models.community import Community
from vouch.models.membership import Membership
from vouch.models.worker import Worker
import vouch.infrastructure.database as db_module
from vouch.main import app

ADMIN_ID = UUID("00000000-0000-0000-0000-00000000a001")


class RecordingNotifier:
    """Captures notifications instead of delivering them."""

    def __init__(self):
        self.events: list[tuple] = []

    async def reference_submitted(self, worker_id, reference_id, rating):
        self.events.append(("reference_submitted", worker_id, reference_id, rating))

    async def reference_disputed(self, worker_id, reference_id, reason):
        self.events.append(("reference_disputed", worker_id, reference_id, reason))

    async def verification_code_issued(self, user_id, community_id, code):
        self.events.append(("verification_code_issued", user_id, community_id, code))


class Seeder:
    """Inserts rows directly, bypassing services, for test setup."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def community(
        self, name: str = "Green Park",
        method: VerificationMethod = VerificationMethod.WHATSAPP,
    ) -> Community:
        community = Community(
            name=name, city="Pune", state="MH",
            verification_method=method.value, member_count=0,
        )
        self.db.add(community)
        await self.db.commit()
        return community

    async def member(self, community: Community, user_id: UUID | None = None) -> UUID:
        user_id = user_id or uuid4()
        self.db.add(Membership(
            user_id=user_id, community_id=community.id,
            verified_at=datetime.now(timezone.utc),
        ))
        community.member_count += 1
        await self.db.commit()
        return user_id

    async def worker(
        self, name: str = "Ravi", service_types: list[str] | None = None,
        user_id: UUID | None = None,
    ) -> Worker:
        worker = Worker(
            name=name,
            user_id=user_id,
            service_types=service_types or ["plumbing"],
            community_ids=[],
        )
        self.db.add(worker)
        await self.db.commit()
        return worker

    async def booking(
        self, seeker_id: UUID, worker: Worker,
        status: BookingStatus = BookingStatus.COMPLETED,
    ) -> Booking:
        booking = Booking(
            id=uuid4(), seeker_id=seeker_id, worker_id=worker.id,
            status=status.value, payment_status="paid",
        )
        self.db.add(booking)
        await self.db.commit()
        return booking


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
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
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def seed(test_db):
    return Seeder(test_db)


@pytest.fixture
async def file_session_factory(tmp_path):
    """SQLite file database: every session gets its own connection, so
    concurrent writers behave like separate requests."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vouch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def file_seed(file_session_factory):
    async with file_session_factory() as session:
        yield Seeder(session)


@pytest.fixture
def locks():
    """Fresh lock registry bound to this test's event loop."""
    return WorkerLockRegistry()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def admin_headers():
    return {"X-User-Id": str(ADMIN_ID)}


@pytest.fixture
async def client(test_engine, test_session_factory, notifier):
    """FastAPI test client with DB, settings and notifier overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: Settings(admin_user_ids=[ADMIN_ID])
    app.dependency_overrides[get_notifier] = lambda: notifier

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
