import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from apps.api.deps import get_lifecycle
from apps.api.middlewares.metrics import MetricsMiddleware
from apps.api.routers import chat, chat_requests, health
from core import close_redis
from core.config import settings
from core.exceptions import (
    ConflictBusy,
    CooldownActive,
    IneligibleRequest,
    NotFound,
    RequestStateConflict,
    TransientStoreError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    yield
    # Shutdown
    notifier = get_lifecycle().notifier
    if notifier is not None:
        await notifier.close()
    await close_redis()


app = FastAPI(
    title="NotAlone Chat Requests API",
    description="API for chat requests between bot users",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(chat_requests.router)  # Already has /chat-requests prefix
app.include_router(chat.router, prefix="/chat", tags=["chat"])


@app.exception_handler(NotFound)  # type: ignore[misc]
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(IneligibleRequest)  # type: ignore[misc]
async def ineligible_handler(request: Request, exc: IneligibleRequest) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": exc.reason, "code": exc.code})


@app.exception_handler(CooldownActive)  # type: ignore[misc]
async def cooldown_handler(request: Request, exc: CooldownActive) -> JSONResponse:
    retry_after = max(1, int(exc.remaining.total_seconds()))
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc), "code": "cooldown", "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(ConflictBusy)  # type: ignore[misc]
async def busy_handler(request: Request, exc: ConflictBusy) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc), "code": "busy"})


@app.exception_handler(RequestStateConflict)  # type: ignore[misc]
async def state_conflict_handler(request: Request, exc: RequestStateConflict) -> JSONResponse:
    return JSONResponse(
        status_code=409, content={"detail": str(exc), "code": "state", "status": exc.request.status}
    )


@app.exception_handler(TransientStoreError)  # type: ignore[misc]
async def transient_store_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable, try again"})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"status": "ok", "service": "notalone-chat-requests"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
