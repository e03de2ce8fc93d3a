"""Tests for the health, readiness, version and store-health endpoints."""

import re
from datetime import datetime

import pytest
from httpx import AsyncClient

from sia.main import app


@pytest.mark.asyncio
async def test_health_api_contract(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"status", "version", "timestamp", "started_at", "uptime_seconds", "uptime_human"}
    assert data["status"] == "ok"
    assert re.match(r"^\d+\.\d+\.\d+$", data["version"])
    datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
    assert isinstance(data["uptime_seconds"], int)


@pytest.mark.asyncio
async def test_ready_returns_200_with_store(client: AsyncClient):
    response = await client.get("/api/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_version_endpoint(client: AsyncClient):
    response = await client.get("/api/version")
    assert response.status_code == 200
    assert response.json() == {"version": "1.0.0"}


@pytest.mark.asyncio
async def test_store_health_reports_memory_backend(client: AsyncClient):
    response = await client.get("/api/health/store")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "healthy"
    assert data["backend"] == "memory"


@pytest.mark.asyncio
async def test_store_health_reports_error_when_ping_raises(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    def _broken_ping() -> bool:
        raise RuntimeError("connection refused")

    monkeypatch.setattr(app.state.sia_store, "ping", _broken_ping)
    response = await client.get("/api/health/store")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["status"] == "error"
    assert "connection refused" in data["message"]


@pytest.mark.asyncio
async def test_root_redirects_to_docs(client: AsyncClient):
    response = await client.get("/", follow_redirects=False)
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/docs"


@pytest.mark.asyncio
async def test_responses_carry_runtime_headers(client: AsyncClient):
    response = await client.get("/api/health", headers={"x-request-id": "req-123"})
    assert float(response.headers["x-sia-runtime-ms"]) > 0
    assert response.headers["x-sia-request-id"] == "req-123"
