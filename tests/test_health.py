"""Health endpoint tests."""

import pytest

from ngobrol import __version__


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["version"] == __version__
    assert data["database"] == "ok"


@pytest.mark.asyncio
async def test_health_without_redis_is_degraded(client):
    """Redis isn't running in tests; the service still answers."""
    data = (await client.get("/api/health")).json()
    assert data["redis"] == "disabled"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_health_needs_no_token(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
