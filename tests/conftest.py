"""Shared fixtures: in-memory SQLite store, clock-driven memory cache, services.

Every test gets a fresh database and a fresh cache. The cache runs on the
process-local backend with an injectable clock so TTL expiry is exercised
without sleeping.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_DSN", "")

import pytest
from httpx import ASGITransport, AsyncClient

from tasknotes.cache.backends import MemoryBackend
from tasknotes.cache.keys import CACHE_TTL_SECONDS
from tasknotes.cache.layer import CacheLayer, get_cache
from tasknotes.database import (
    build_engine,
    build_session_factory,
    create_db_and_tables,
    get_db,
)
from tasknotes.models import UserCreate
from tasknotes.services.note_service import NoteService
from tasknotes.services.task_service import TaskService
from tasknotes.services.user_service import UserService


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeNotifier:
    def __init__(self, fail_for: set[str] | None = None):
        self.sent: list[tuple[str, str]] = []
        self.fail_for = fail_for or set()

    async def send_private_message(self, user_id: str, message: str) -> None:
        if user_id in self.fail_for:
            raise RuntimeError("delivery failed")
        self.sent.append((user_id, message))


@pytest.fixture
async def test_engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    return MemoryBackend(maxsize=1024, ttl=CACHE_TTL_SECONDS, timer=clock)


@pytest.fixture
def cache(memory_backend):
    return CacheLayer(backend=memory_backend)


@pytest.fixture
async def users(test_db):
    service = UserService(test_db)
    await service.register_user(UserCreate(username="alice", email="alice@example.com"))
    await service.register_user(UserCreate(username="bob", email="bob@example.com"))
    return service


@pytest.fixture
def task_service(test_db, cache, users):
    return TaskService(test_db, cache=cache, users=users)


@pytest.fixture
def note_service(test_db, cache, task_service):
    return NoteService(test_db, task_service=task_service, cache=cache)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
async def client(test_session_factory, cache):
    """API client with the store and cache dependencies overridden."""
    from tasknotes.main import app

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
