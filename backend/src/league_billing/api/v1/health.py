"""Liveness and readiness checks."""
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis import asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.api.deps import get_db
from league_billing.config import settings

logger = structlog.get_logger(__name__)

router = APIRouter()

VERSION = "0.1.0"


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("readiness_database_failed", error=str(exc))
        return "disconnected"
    return "connected"


async def _check_tier_cache() -> str:
    if not settings.cache_enabled:
        return "disabled"

    client = aioredis.from_url(str(settings.redis_url), socket_connect_timeout=2)
    try:
        await client.ping()
    except Exception as exc:
        logger.warning("readiness_redis_failed", error=str(exc))
        return "disconnected"
    finally:
        await client.aclose()
    return "connected"


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> dict[str, str]:
    """Liveness only: answers while the process is up, touching no dependencies."""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat(), "version": VERSION}


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Ready when the database answers.

    Redis is reported too, but it only backs the tier listing cache and the
    API serves tiers from the database without it.
    """
    checks = {"database": await _check_database(db), "redis": await _check_tier_cache()}
    ready = checks["database"] == "connected"

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready, "checks": checks, "timestamp": datetime.utcnow().isoformat()},
    )
