"""Health check endpoints."""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

router = APIRouter()

HEALTH_VERSION = "1.0.0"
SERVICE_STARTED_AT = datetime.now(timezone.utc)


def _iso_utc(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _uptime_seconds(now: datetime) -> int:
    return max(0, int((now - SERVICE_STARTED_AT).total_seconds()))


def _uptime_human(seconds: int) -> str:
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class HealthResponse(BaseModel):
    """GET /api/health response."""

    model_config = ConfigDict(extra="forbid")
    status: Annotated[str, Field(description="Always 'ok'")]
    version: Annotated[str, Field(description="Semver MAJOR.MINOR.PATCH")]
    timestamp: Annotated[str, Field(description="ISO8601 UTC")]
    started_at: Annotated[str, Field(description="ISO8601 UTC when service process started")]
    uptime_seconds: Annotated[int, Field(description="Seconds service has been up")]
    uptime_human: Annotated[str, Field(description="Human readable uptime")]


class StoreHealthResponse(BaseModel):
    """GET /api/health/store response."""

    success: bool
    status: Annotated[str, Field(description="healthy, unhealthy or error")]
    message: str
    timestamp: Annotated[str, Field(description="ISO8601 UTC")]
    backend: Annotated[str, Field(description="Active store backend (memory or sql)")]


def _health_payload(status: str) -> HealthResponse:
    now = datetime.now(timezone.utc)
    up = _uptime_seconds(now)
    return HealthResponse(
        status=status,
        version=HEALTH_VERSION,
        timestamp=_iso_utc(now),
        started_at=_iso_utc(SERVICE_STARTED_AT),
        uptime_seconds=up,
        uptime_human=_uptime_human(up),
    )


@router.get("/version")
async def version():
    """Return API version (lightweight, for dashboards)."""
    return {"version": HEALTH_VERSION}


@router.get("/ready", response_model=HealthResponse)
async def ready(request: Request):
    """Readiness probe. Returns 200 once a store is attached to the app."""
    if getattr(request.app.state, "sia_store", None) is None:
        raise HTTPException(status_code=503, detail="not ready")
    return _health_payload("ready")


@router.get("/health", response_model=HealthResponse)
async def health():
    """Return API health status."""
    return _health_payload("ok")


@router.get("/health/store", response_model=StoreHealthResponse)
async def store_health(request: Request):
    """Round-trip the store and report whether it answers."""
    store = getattr(request.app.state, "sia_store", None)
    timestamp = _iso_utc(datetime.now(timezone.utc))
    if store is None:
        return StoreHealthResponse(
            success=False, status="unhealthy", message="Store is not configured", timestamp=timestamp, backend="none"
        )
    try:
        healthy = store.ping()
    except Exception as exc:
        logger.warning("store_health_failed backend=%s error=%s", store.backend, exc)
        return StoreHealthResponse(
            success=False, status="error", message=f"Store health check failed: {exc}", timestamp=timestamp,
            backend=store.backend,
        )
    if not healthy:
        return StoreHealthResponse(
            success=False, status="unhealthy", message="Store did not answer ping", timestamp=timestamp,
            backend=store.backend,
        )
    return StoreHealthResponse(
        success=True, status="healthy", message="Store connection is healthy", timestamp=timestamp,
        backend=store.backend,
    )
