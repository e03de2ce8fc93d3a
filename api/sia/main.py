from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from sia.adapters.sia_store import InMemorySiaStore
from sia.adapters.sql_store import SqlSiaStore
from sia.routers import assets, health, ip, search, storyworlds, users
from sia.services import story_protocol_provider
from sia.services.errors import ServiceError

app = FastAPI(title="SIA.vision API", version="1.0.0")

sia_logger = logging.getLogger("sia")
if not sia_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    sia_logger.addHandler(handler)
sia_logger.propagate = False
sia_logger.setLevel(logging.INFO)

logger = logging.getLogger("sia.api.requests")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "1" if default else "").strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


def _route_signature(request: Request) -> tuple[str, str]:
    route = request.scope.get("route")
    route_path = str(getattr(route, "path", "") or "") if route is not None else ""
    route_name = str(getattr(route, "name", "") or "") if route is not None else ""
    return route_path or request.url.path, route_name or "unknown"


def _client_identity(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",", 1)[0].strip()
    remote = request.client.host if request.client and request.client.host else ""
    if remote:
        return remote
    return "unknown"


def _correlation_id(request: Request) -> str:
    for key in (
        "x-request-id",
        "x-cloud-trace-context",
        "x-vercel-id",
        "x-amzn-trace-id",
        "cf-ray",
    ):
        value = request.headers.get(key)
        if value:
            return value
    return "none"


def _append_exposed_headers(existing: str | None, extra: list[str]) -> str:
    merged: list[str] = []
    seen: set[str] = set()
    for chunk in ((existing or "").split(","), extra):
        for value in chunk:
            item = str(value).strip()
            if not item or item.lower() in seen:
                continue
            seen.add(item.lower())
            merged.append(item)
    return ", ".join(merged)


def _apply_runtime_response_headers(response: Response, request: Request, elapsed_ms: float) -> None:
    response.headers["x-sia-runtime-ms"] = f"{max(0.1, float(elapsed_ms)):.4f}"
    correlation_id = _correlation_id(request)
    if correlation_id != "none":
        response.headers["x-sia-request-id"] = correlation_id
    response.headers["access-control-expose-headers"] = _append_exposed_headers(
        response.headers.get("access-control-expose-headers"),
        ["x-sia-runtime-ms", "x-sia-request-id"],
    )


# Configure CORS
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize store based on environment
database_url = os.getenv("DATABASE_URL")
if database_url:
    app.state.sia_store = SqlSiaStore(database_url)
else:
    app.state.sia_store = InMemorySiaStore(persist_path=os.getenv("SIA_STORE_PATH"))

app.state.story_protocol_provider = story_protocol_provider.provider_from_env()


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_api_error method=%s path=%s error=%s",
        request.method,
        request.url.path,
        exc.__class__.__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""
    return RedirectResponse(url="/docs")


app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(storyworlds.router, prefix="/api", tags=["storyworlds"])
app.include_router(assets.router, prefix="/api", tags=["assets"])
app.include_router(search.router, prefix="/api", tags=["search"])
app.include_router(ip.router, prefix="/api", tags=["ip"])


@app.middleware("http")
async def capture_request_timing(request: Request, call_next):
    start = time.perf_counter()
    status_code: int | None = None
    exc_name: str | None = None
    response = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        status_code = 500
        exc_name = exc.__class__.__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if status_code is None:
            status_code = 500
        if response is not None:
            _apply_runtime_response_headers(response, request, elapsed_ms)
        if (
            elapsed_ms >= _slow_request_ms_threshold()
            or status_code >= 500
            or _env_flag("API_LOG_ALL_REQUESTS", False)
        ):
            request_path, route_label = _route_signature(request)
            log = logger.warning if status_code >= 500 or elapsed_ms >= _slow_request_ms_threshold() else logger.info
            log(
                "api_request method=%s path=%s route=%s raw_path=%s status=%s elapsed_ms=%.2f "
                "correlation=%s client=%s exception=%s",
                request.method,
                request_path,
                route_label,
                request.url.path,
                status_code,
                elapsed_ms,
                _correlation_id(request),
                _client_identity(request),
                exc_name or "none",
            )
