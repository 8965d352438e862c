"""Health check endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "secpulse-sync"
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_readiness_without_redis(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "disabled"}
    assert data["connectors"] == 0


@pytest.mark.asyncio
async def test_trace_id_is_echoed(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "trc_from_caller"})
    assert response.headers["X-Trace-Id"] == "trc_from_caller"

    generated = await client.get("/api/v1/health")
    assert generated.headers["X-Trace-Id"].startswith("trc_")
