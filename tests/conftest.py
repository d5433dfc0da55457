"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from uptime_tracker.config import Settings
from uptime_tracker.database import configure_sqlite, init_db
from uptime_tracker.errors import PersistenceError
from uptime_tracker.main import create_app
from uptime_tracker.services import ProberService, SchedulerService, ServiceRegistry, StatusStore


def route_by_host(request: httpx.Request) -> httpx.Response:
    """Mock upstream: the first host label picks the behaviour."""
    host = request.url.host
    if host.startswith("up"):
        return httpx.Response(200, text="ok")
    if host.startswith("redirect"):
        return httpx.Response(204)
    if host.startswith("error"):
        return httpx.Response(500, text="boom")
    if host.startswith("missing"):
        return httpx.Response(404)
    raise httpx.ConnectError("Connection refused", request=request)


def make_prober(handler=route_by_host, timeout_ms: int = 2000) -> ProberService:
    return ProberService(timeout_ms=timeout_ms, transport=httpx.MockTransport(handler))


def sample(timestamp, status="up", response_time_ms=100):
    """Stand-in for a StatusRecord when only the three read fields matter."""
    return SimpleNamespace(timestamp=timestamp, status=status, response_time_ms=response_time_ms)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite so concurrent sessions get real connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    configure_sqlite(engine)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> StatusStore:
    return StatusStore(session_factory)


@pytest.fixture
def registry(session_factory, store) -> ServiceRegistry:
    return ServiceRegistry(session_factory, store)


@pytest.fixture
def prober() -> ProberService:
    return make_prober()


@pytest.fixture
def scheduler(registry, store, prober) -> SchedulerService:
    return SchedulerService(registry, store, prober)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(data_path=str(tmp_path), scheduler_enabled=False)


@pytest.fixture
def app(test_settings, session_factory, prober):
    """App wired to the test database and mock upstream."""
    return create_app(app_settings=test_settings, session_factory=session_factory, prober=prober)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def slow_handler():
    """Handler that tracks how many requests are in flight at once."""
    state = SimpleNamespace(in_flight=0, peak=0, delay=0.2)

    async def handler(request: httpx.Request) -> httpx.Response:
        state.in_flight += 1
        state.peak = max(state.peak, state.in_flight)
        try:
            await asyncio.sleep(state.delay)
        finally:
            state.in_flight -= 1
        return httpx.Response(200)

    handler.state = state
    return handler


class FlakyStore(StatusStore):
    """Store that refuses writes for selected services."""

    def __init__(self, session_factory, failing_ids, exc=None):
        super().__init__(session_factory)
        self.failing_ids = set(failing_ids)
        self.exc = exc or PersistenceError("write rejected")

    async def insert(self, service_id, status, response_time_ms, timestamp=None):
        if service_id in self.failing_ids:
            raise self.exc
        return await super().insert(service_id, status, response_time_ms, timestamp)


class BrokenRegistry:
    """Registry whose store cannot be reached."""

    async def list_services(self):
        raise PersistenceError("store unreachable")
