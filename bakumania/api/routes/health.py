"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request, status

from bakumania.cache.client import valkey_healthcheck
from bakumania.core.config import settings
from bakumania.core.logging import get_logger
from bakumania.database.connection import db_healthcheck
from bakumania.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its dependencies.",
)
async def health_check() -> HealthResponse:
    """
    Perform health check on API and dependencies.

    The token blacklist is the only Valkey user, so a missing cache only
    degrades the service.
    """
    checks = {
        "database": await db_healthcheck(),
        "cache": await valkey_healthcheck(),
    }

    if all(checks.values()):
        health = "healthy"
    elif checks["database"]:
        health = "degraded"
    else:
        health = "unhealthy"

    return HealthResponse(
        status=health,
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    """Returns 200 once the database answers."""
    if not await db_healthcheck():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready",
        )
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    return {"status": "alive"}


@router.get(
    "/cache",
    summary="Read cache statistics",
    description="Entry counts and hit/miss totals of the in-process read caches.",
)
async def cache_stats(request: Request) -> dict:
    return {
        name: {
            "ttl_seconds": cache.ttl_seconds,
            "entries": len(cache),
            "hits": cache.hits,
            "misses": cache.misses,
        }
        for name, cache in request.app.state.caches.items()
    }
