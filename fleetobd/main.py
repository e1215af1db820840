# fleetobd/main.py
"""
FastAPI application entry point.
Includes security middleware, error mapping for the fleet core, and all routers.
"""

import asyncio
import re
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fleetobd.routers import health, live, stats, telemetry, vehicles
from fleetobd.database import create_tables
from fleetobd.config import settings
from fleetobd.errors import FleetError, TransientError
from fleetobd.services.broadcast_service import LiveBroadcaster
from fleetobd.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Fleet OBD Telemetry API",
    description="Vehicle telemetry ingestion, driver binding and fleet consumption analytics.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard runs on its own origin) ─────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
DEVICE_PATH = re.compile(r"^/api/v1/vehicles/\d+/obd$")


class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional shared secret between the auth gateway and this backend.
    OBD devices push without a session or key, so their endpoint is excluded.
    Set API_KEY in .env. Leave empty to disable.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        path = request.url.path
        if path in open_paths or DEVICE_PATH.match(path) or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing + Timeout Middleware ──────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(f"{request.method} {request.url.path} timed out after {settings.REQUEST_TIMEOUT_SECONDS}s")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Request timed out, retry later"},
            headers={"Retry-After": str(TransientError.retry_after_seconds)},
        )
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Fleet Core Errors ────────────────────────────────────────────────────────
@app.exception_handler(FleetError)
async def fleet_error_handler(request: Request, exc: FleetError):
    headers = None
    if isinstance(exc, TransientError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
        logger.error(f"Transient failure on {request.url.path}: {exc}", exc_info=exc.__cause__)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "errors": exc.errors},
        headers=headers,
    )


# ── Request Validation ───────────────────────────────────────────────────────
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Raw input is left out: a rejected NaN/Infinity cannot be rendered as JSON
    detail = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    logger.debug(f"Rejected request on {request.url.path}: {detail}")
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": detail})


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(telemetry.router, prefix="/api/v1", tags=["📡 OBD Telemetry"])
app.include_router(vehicles.router,  prefix="/api/v1", tags=["🚗 Fleet"])
app.include_router(stats.router,     prefix="/api/v1", tags=["📊 Dashboard"])
app.include_router(health.router,    prefix="/api/v1", tags=["💚 Health"])
app.include_router(live.router,      prefix="/api/v1", tags=["🔴 Live"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Fleet OBD backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    app.state.broadcaster = LiveBroadcaster()
    logger.info(f"📡 Live broadcaster ready (queue size {settings.BROADCAST_QUEUE_SIZE})")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Fleet OBD backend shutting down...")
