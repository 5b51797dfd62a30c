"""Health check endpoints."""

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db, get_redis_client

router = APIRouter()
logger = logging.getLogger(__name__)


async def check_database(db: AsyncSession) -> str | None:
    """Return the error text, or None when the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return str(e)
    return None


async def check_redis(redis_client: redis.Redis) -> str | None:
    try:
        await redis_client.ping()
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return str(e)
    return None


@router.get("/")
async def health_check() -> dict[str, str]:
    """Liveness only."""
    return {"status": "healthy"}


@router.get("/db")
async def health_check_db(db: AsyncSession = Depends(get_db)) -> dict[str, str]:
    """Chat requests cannot be created or answered without the database."""
    error = await check_database(db)
    if error:
        return {"status": "unhealthy", "database": "disconnected", "error": error}
    return {"status": "healthy", "database": "connected"}


@router.get("/redis")
async def health_check_redis(redis_client: redis.Redis = Depends(get_redis_client)) -> dict[str, str]:
    """Without Redis chats still open, but relay routing and filter wizard drafts are lost."""
    error = await check_redis(redis_client)
    if error:
        return {"status": "unhealthy", "redis": "disconnected", "error": error}
    return {"status": "healthy", "redis": "connected"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_db), redis_client: redis.Redis = Depends(get_redis_client)
) -> JSONResponse:
    """503 until both the database and Redis answer."""
    checks = {"database": await check_database(db), "redis": await check_redis(redis_client)}
    ready = not any(checks.values())

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "unavailable",
            **{name: "connected" if error is None else "disconnected" for name, error in checks.items()},
        },
    )
