"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_ping_returns_empty_200(client):
    resp = await client.get("/ping")
    assert resp.status_code == 200
    assert resp.content == b""


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status, version and database state."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert "version" in data
