"""Tests for security middleware — headers, request IDs, error bodies."""

import pytest


@pytest.mark.asyncio
async def test_security_headers_on_ping(client):
    r = await client.get("/ping")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/ping")
    r2 = await client.get("/ping")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/ping", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/ping")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_error_responses_carry_headers_and_detail(client):
    r = await client.get("/users/@me")
    assert r.status_code == 401
    assert r.json() == {"detail": "Missing Authorization header"}
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_unknown_route_is_404(client):
    r = await client.get("/nope")
    assert r.status_code == 404
