"""Shared test fixtures - uses async SQLite for isolated testing."""

import textwrap
from datetime import datetime

import pytest
from fakeredis import FakeAsyncRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from survival.core.errors import NotFound, StoreUnavailable
from survival.db.database import Base, get_db
from survival.db.redis import get_redis
from survival.schemas.progress import NewTransition, TransitionRecord
from survival.services.story_loader import StoryLoader
from survival.stores.base import LedgerStore

# In-memory SQLite for tests (no Docker needed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///file::memory:?cache=shared&uri=true"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)

# A small graph with one meter-draining branch and two endings
TRIAL_STORY = textwrap.dedent("""
    slug: trial
    name: Trial Run
    decisions:
      - decision_id: START
        decision_number: 0
        title: Landfall
        reflective_prompts: ["Who goes first?"]
        choices:
          - to: A
            title: Ration the food
            morale: -0.1
            condition: 0
            resources: -10
            effects:
              morale: Hungry sailors grumble.
          - to: B
            title: Swim for it
            condition: -0.5
            resources: -100
      - decision_id: A
        decision_number: 1
        choices:
          - to: END_GOOD
            morale: 0.5
          - to: B
      - decision_id: B
        decision_number: 1
        choices:
          - to: END_BAD
            morale: -1
      - decision_id: END_GOOD
        decision_number: 2
      - decision_id: END_BAD
        decision_number: 2
""")


async def _override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    # Import all models so Base.metadata knows about them
    import survival.models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db():
    """Direct async DB session for service-level tests."""
    async with test_session_factory() as session:
        yield session
        await session.commit()


@pytest.fixture
def story_dir(tmp_path):
    (tmp_path / "trial.yaml").write_text(TRIAL_STORY, encoding="utf-8")
    return tmp_path


@pytest.fixture
async def trial_story_id(db, story_dir) -> int:
    story = await StoryLoader(story_dir).load(db, "trial")
    await db.commit()
    return story.id


@pytest.fixture
def redis():
    return FakeAsyncRedis(decode_responses=True)


@pytest.fixture
async def client(redis):
    """Async HTTP test client with test DB and fake Redis."""
    from survival.main import app

    async def _override_get_redis():
        return redis

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_redis] = _override_get_redis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class MemoryLedger(LedgerStore):
    """In-memory ledger with switches for injecting store failures."""

    def __init__(self):
        self.records: dict[int, TransitionRecord] = {}
        self._next_id = 1
        self.fail_create = False
        self.fail_mark_complete = False
        self.fail_bulk_delete = False
        self.fail_delete_ids: set[int] = set()
        self.calls: list[str] = []

    async def list_by_owner(self, player):
        self.calls.append("list_by_owner")
        return sorted(
            (r for r in self.records.values() if r.email == player),
            key=lambda r: (r.created_at, r.id),
        )

    async def list_all(self):
        return sorted(self.records.values(), key=lambda r: (r.created_at, r.id))

    async def create(self, record: NewTransition):
        self.calls.append("create")
        if self.fail_create:
            raise StoreUnavailable("create failed")
        created = TransitionRecord(
            id=self._next_id, created_at=datetime(2026, 1, 1), **record.model_dump()
        )
        self.records[created.id] = created
        self._next_id += 1
        return created

    async def mark_complete(self, record_id):
        self.calls.append("mark_complete")
        if self.fail_mark_complete:
            raise StoreUnavailable("patch failed")
        if record_id not in self.records:
            raise NotFound(str(record_id))
        self.records[record_id] = self.records[record_id].model_copy(update={"complete": True})

    async def delete_by_owner(self, player):
        self.calls.append("delete_by_owner")
        if self.fail_bulk_delete:
            raise StoreUnavailable("bulk delete failed")
        ids = [i for i, r in self.records.items() if r.email == player]
        for i in ids:
            del self.records[i]
        return len(ids)

    async def delete(self, record_id):
        self.calls.append("delete")
        if record_id in self.fail_delete_ids:
            raise StoreUnavailable(f"delete {record_id} failed")
        if record_id not in self.records:
            raise NotFound(str(record_id))
        del self.records[record_id]


@pytest.fixture
def memory_ledger():
    return MemoryLedger()
