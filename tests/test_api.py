"""Tests for the FastAPI routes."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from uptime_tracker.config import Settings
from uptime_tracker.database import utcnow
from uptime_tracker.main import create_app
from uptime_tracker.models import StatusRecord
from uptime_tracker.routers.services import HISTORY_MAX_LIMIT
from uptime_tracker.services import SchedulerService

from .conftest import BrokenRegistry, FlakyStore


async def register(client, name="Website", url="https://up.example.com/") -> dict:
    resp = await client.post("/api/services", json={"name": name, "url": url})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Service CRUD ─────────────────────────────────────────────────────────────


class TestServiceRoutes:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client) -> None:
        created = await register(client)
        assert created["name"] == "Website"
        assert created["url"] == "https://up.example.com/"
        assert "created_at" in created and "updated_at" in created

        resp = await client.get("/api/services")
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()] == [created["id"]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"name": "", "url": "https://up.example.com"},
        {"name": "   ", "url": "https://up.example.com"},
        {"name": "No URL"},
        {"url": "https://up.example.com"},
        {"name": "Bad", "url": "not a url"},
        {"name": "Bad", "url": "example.com/health"},
        {"name": "Bad", "url": "ftp://example.com/"},
        {"name": "Bad", "url": "https://"},
        {"name": "Bad", "url": "http://example.com:99999/"},
    ])
    async def test_create_rejects_invalid(self, client, body) -> None:
        resp = await client.post("/api/services", json=body)
        assert resp.status_code == 422
        assert (await client.get("/api/services")).json() == []

    @pytest.mark.asyncio
    async def test_get_update_delete(self, client) -> None:
        created = await register(client)
        sid = created["id"]

        resp = await client.get(f"/api/services/{sid}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Website"

        resp = await client.put(f"/api/services/{sid}", json={"name": "Site", "url": "http://up.other.com"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Site"
        assert resp.json()["url"] == "http://up.other.com"

        resp = await client.delete(f"/api/services/{sid}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Service deleted successfully"}

        resp = await client.get(f"/api/services/{sid}")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_update_validates(self, client) -> None:
        created = await register(client)
        resp = await client.put(f"/api/services/{created['id']}", json={"name": "x", "url": "nope"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_missing_service_is_404(self, client) -> None:
        assert (await client.put("/api/services/42", json={"name": "x", "url": "https://up.example.com"})).status_code == 404
        assert (await client.delete("/api/services/42")).status_code == 404
        assert (await client.get("/api/services/42/status")).status_code == 404
        assert (await client.get("/api/services/42/buckets")).status_code == 404


# ── Check triggers ───────────────────────────────────────────────────────────


class TestCheckRoutes:
    @pytest.mark.asyncio
    async def test_manual_check(self, client) -> None:
        await register(client, "Healthy", "https://up.example.com/")
        await register(client, "Broken", "https://error.example.com/")
        await register(client, "Offline", "https://offline.example.com/")

        resp = await client.post("/api/check")
        assert resp.status_code == 200
        results = resp.json()
        assert len(results) == 3
        by_name = {r["service"]["name"]: r for r in results}
        assert by_name["Healthy"]["status"] == "up"
        assert by_name["Broken"]["status"] == "down"
        assert by_name["Offline"]["status"] == "down"
        for result in results:
            assert set(result["service"]) == {"id", "name", "url"}
            assert result["response_time_ms"] >= 0
            assert result["recorded"] is True

    @pytest.mark.asyncio
    async def test_check_with_no_services(self, client) -> None:
        resp = await client.post("/api/check")
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_cron_check(self, client) -> None:
        await register(client)
        resp = await client.get("/api/cron/check")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["persistence_failures"] == 0
        assert len(data["results"]) == 1
        assert data["results"][0]["status"] == "up"

    @pytest.mark.asyncio
    async def test_cron_key_required_when_configured(self, tmp_path, session_factory, prober) -> None:
        settings = Settings(data_path=str(tmp_path), scheduler_enabled=False, cron_api_key="s3cret")
        app = create_app(app_settings=settings, session_factory=session_factory, prober=prober)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            assert (await c.get("/api/cron/check")).status_code == 401
            assert (await c.get("/api/cron/check?key=wrong")).status_code == 401
            resp = await c.get("/api/cron/check?key=s3cret")
            assert resp.status_code == 200
            assert resp.json()["success"] is True

    @pytest.mark.asyncio
    async def test_unrecorded_outcome_is_reported(self, app, client, session_factory, prober) -> None:
        healthy = await register(client, "Healthy", "https://up.example.com/")
        unwritable = await register(client, "Unwritable", "https://up.unwritable.example.com/")
        store = FlakyStore(session_factory, {unwritable["id"]})
        app.state.scheduler = SchedulerService(app.state.registry, store, prober)

        resp = await client.post("/api/check")
        assert resp.status_code == 200
        recorded = {r["service"]["id"]: r["recorded"] for r in resp.json()}
        assert recorded == {healthy["id"]: True, unwritable["id"]: False}
        assert all(r["status"] == "up" for r in resp.json())

        resp = await client.get("/api/cron/check")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["persistence_failures"] == 1
        assert len(data["results"]) == 2
        assert await store.find_latest(unwritable["id"]) is None
        assert len(await store.find_by_service_in_range(healthy["id"])) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [("POST", "/api/check"), ("GET", "/api/cron/check")])
    async def test_unreachable_store_is_503(self, app, client, prober, method, path) -> None:
        app.state.scheduler = SchedulerService(BrokenRegistry(), app.state.store, prober)

        resp = await client.request(method, path)
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "persistence_error"


# ── Status queries ───────────────────────────────────────────────────────────


class TestStatusRoutes:
    @pytest.mark.asyncio
    async def test_latest_defaults_to_unknown(self, client) -> None:
        await register(client, "A", "https://up.a.example.com/")
        await register(client, "B", "https://up.b.example.com/")
        await register(client, "C", "https://up.c.example.com/")

        resp = await client.get("/api/status/latest")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert len(data["results"]) == 3
        for entry in data["results"]:
            assert entry["status"] == "unknown"
            assert entry["response_time_ms"] == 0
            assert entry["timestamp"] is None

    @pytest.mark.asyncio
    async def test_latest_after_check(self, client) -> None:
        await register(client, "Healthy", "https://up.example.com/")
        await register(client, "Broken", "https://error.example.com/")
        await client.post("/api/check")

        data = (await client.get("/api/status/latest")).json()
        by_name = {r["service"]["name"]: r for r in data["results"]}
        assert by_name["Healthy"]["status"] == "up"
        assert by_name["Broken"]["status"] == "down"
        assert by_name["Broken"]["timestamp"] is not None

    @pytest.mark.asyncio
    async def test_overview(self, client, store) -> None:
        healthy = await register(client, "Healthy", "https://up.example.com/")
        await register(client, "Broken", "https://error.example.com/")
        await register(client, "Never", "https://up.never.example.com/")
        await store.insert(healthy["id"], "down", 10, timestamp=utcnow() - timedelta(hours=1))

        before = (await client.get("/api/status/overview")).json()
        assert before["total_services"] == 3
        assert before["services_down"] == 1
        assert before["services_unknown"] == 2

        await client.post("/api/check")

        data = (await client.get("/api/status/overview")).json()
        assert data["total_services"] == 3
        assert data["services_up"] == 2
        assert data["services_down"] == 1
        assert data["services_unknown"] == 0
        # Healthy 1/2 up, Broken 0/1, Never 1/1
        assert data["overall_uptime_24h"] == 50.0

    @pytest.mark.asyncio
    async def test_history_newest_first_with_limit_and_days(self, client, store) -> None:
        service = await register(client)
        now = utcnow()
        for hours in (1, 2, 3, 50):
            await store.insert(service["id"], "up", hours, timestamp=now - timedelta(hours=hours))

        resp = await client.get(f"/api/services/{service['id']}/status")
        assert resp.status_code == 200
        assert [r["response_time_ms"] for r in resp.json()] == [1, 2, 3, 50]

        resp = await client.get(f"/api/services/{service['id']}/status?days=1")
        assert [r["response_time_ms"] for r in resp.json()] == [1, 2, 3]

        resp = await client.get(f"/api/services/{service['id']}/status?limit=2")
        records = resp.json()
        assert [r["response_time_ms"] for r in records] == [1, 2]
        assert set(records[0]) == {"id", "service_id", "status", "response_time_ms", "timestamp"}

    @pytest.mark.asyncio
    async def test_history_empty_after_delete(self, client, store) -> None:
        service = await register(client)
        await client.post("/api/check")
        assert len(await store.find_by_service_in_range(service["id"])) == 1

        await client.delete(f"/api/services/{service['id']}")
        assert await store.find_by_service_in_range(service["id"]) == []

    @pytest.mark.asyncio
    async def test_buckets(self, client, store) -> None:
        service = await register(client)
        now = utcnow()
        # 10-minute anchor offset plus 30 minutes puts this in the newest hourly bucket
        await store.insert(service["id"], "down", 300, timestamp=now - timedelta(minutes=40))
        await store.insert(service["id"], "up", 100, timestamp=now - timedelta(minutes=45))

        resp = await client.get(f"/api/services/{service['id']}/buckets?days=1&buckets=24")
        assert resp.status_code == 200
        data = resp.json()
        assert data["bucket_count"] == 24
        assert data["interval_minutes"] == 60
        assert len(data["buckets"]) == 24
        newest = data["buckets"][-1]
        assert newest["status"] == "down"
        assert newest["count"] == 2
        assert newest["mean_response_time_ms"] == 200
        assert all(b["status"] == "unknown" for b in data["buckets"][:-1])
        assert data["uptime_percent"] == 50

        starts = [datetime.fromisoformat(b["start_time"]) for b in data["buckets"]]
        ends = [datetime.fromisoformat(b["end_time"]) for b in data["buckets"]]
        assert starts[1:] == ends[:-1]

    @pytest.mark.asyncio
    async def test_buckets_cover_long_dense_window(self, client, session_factory) -> None:
        service = await register(client)
        # One record a minute for 60 days: far more than one history page holds
        total = 60 * 24 * 60
        assert total > HISTORY_MAX_LIMIT
        base = utcnow() - timedelta(days=60, minutes=10)
        async with session_factory() as session:
            await session.execute(insert(StatusRecord), [
                {
                    "service_id": service["id"],
                    "status": "up",
                    "response_time_ms": 50,
                    "timestamp": base + timedelta(minutes=i, seconds=30),
                }
                for i in range(total)
            ])
            await session.commit()

        resp = await client.get(f"/api/services/{service['id']}/buckets?days=60&buckets=60")
        assert resp.status_code == 200
        data = resp.json()
        assert [b for b in data["buckets"] if b["status"] == "unknown"] == []
        assert sum(b["count"] for b in data["buckets"]) == total
        assert data["uptime_percent"] == 100
        assert data["mean_response_time_ms"] == 50

    @pytest.mark.asyncio
    async def test_buckets_rejects_zero(self, client) -> None:
        service = await register(client)
        resp = await client.get(f"/api/services/{service['id']}/buckets?buckets=0")
        assert resp.status_code == 422


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "scheduler_running": False}

    @pytest.mark.asyncio
    async def test_lifespan_manages_injected_engine(self, tmp_path, prober) -> None:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifespan.db'}")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        settings = Settings(data_path=str(tmp_path / "default-data"), scheduler_enabled=False)
        app = create_app(app_settings=settings, session_factory=factory, prober=prober)

        async with app.router.lifespan_context(app):
            # Tables were created on the injected engine
            service = await app.state.registry.create_service("A", "https://up.example.com")
            assert (await app.state.registry.get_service(service.id)).name == "A"

        assert not (tmp_path / "default-data").exists()
