"""Tests for GET /health and the correlation ID middleware."""

import pytest
from httpx import ASGITransport, AsyncClient

from audit_pipeline.main import app


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["cache_backend"] in ("memory", "redis")
    assert "version" in data


@pytest.mark.asyncio
async def test_health_correlation_id_auto_generated(client: AsyncClient):
    """GET /health returns a correlation_id when not provided."""
    r = await client.get("/health")
    assert len(r.json()["correlation_id"]) > 0
    assert r.headers["X-Correlation-ID"] == r.json()["correlation_id"]


@pytest.mark.asyncio
async def test_health_correlation_id_preserved(client: AsyncClient):
    r = await client.get("/health", headers={"X-Correlation-ID": "corr-abc"})
    assert r.json()["correlation_id"] == "corr-abc"
    assert r.headers["X-Correlation-ID"] == "corr-abc"
