"""
tests.test_smoke

Smoke tests for the HTTP surface.

Responsibilities:
- Ensure the FastAPI app boots and serves health checks.
- Exercise plan rendering end-to-end, including configuration errors.
"""

from __future__ import annotations

import httpx
import pytest

from pg_provisioner.api.app import create_app
from pg_provisioner.settings import Settings


def _client(settings: Settings) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=create_app(settings=settings))
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
async def test_health_endpoints(settings: Settings) -> None:
    async with _client(settings) as client:
        r = await client.get("/healthz")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.headers["x-request-id"]

        r = await client.get("/readyz")
        assert r.status_code == 200
        assert r.json() == {"status": "ready", "enabled": True}


@pytest.mark.asyncio
async def test_render_plan(settings: Settings, app_registry) -> None:
    async with _client(settings) as client:
        r = await client.post("/v1/plans", json={"databases": app_registry})

    assert r.status_code == 200
    body = r.json()
    assert body["active"] is True
    assert body["databases"] == ["app"]
    ids = [t["id"] for t in body["tasks"]]
    assert ids.index("database-app") < ids.index("database-app-post-create")
    assert ["database-app", "database-app-post-create"] in body["edges"]
    hba = next(v for k, v in body["files"].items() if k.endswith("pg_hba.conf"))
    assert hba.endswith("local all all peer\n")


@pytest.mark.asyncio
async def test_render_plan_rejects_malformed_registry(settings: Settings) -> None:
    async with _client(settings) as client:
        r = await client.post(
            "/v1/plans", json={"databases": {"x": {"type": "postgresql", "user": ""}}}
        )
    assert r.status_code == 422
    assert "owning user" in r.json()["detail"]


@pytest.mark.asyncio
async def test_render_plan_inactive_for_other_engines(settings: Settings) -> None:
    async with _client(settings) as client:
        r = await client.post(
            "/v1/plans", json={"databases": [{"name": "c", "type": "mysql", "user": "u"}]}
        )
    assert r.status_code == 200
    assert r.json()["active"] is False
    assert r.json()["tasks"] == []


# --- Module Notes -----------------------------------------------------------
# ASGITransport does not run the lifespan; the app holds no resources that need it.
