"""
Health Check Routes

System health and status endpoints.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from photo_service import __version__
from photo_service.database import get_db
from photo_service.deps import get_storage
from photo_service.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    storage=Depends(get_storage),
) -> HealthResponse:
    """
    Health check endpoint.

    Returns overall system health and individual service statuses.
    """
    services = {}

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        services["database"] = "healthy"
    except Exception as e:
        logger.error("Database health check failed: %s", type(e).__name__)
        services["database"] = "unhealthy"

    # Check MinIO
    try:
        await asyncio.to_thread(storage.list_files, "health-check/")
        services["storage"] = "healthy"
    except Exception as e:
        logger.error("Storage health check failed: %s", type(e).__name__)
        services["storage"] = "unhealthy"

    all_healthy = all(s == "healthy" for s in services.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        services=services,
    )


@router.get("/health/live")
async def liveness():
    """
    Kubernetes liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(db: AsyncSession = Depends(get_db)):
    """Kubernetes readiness probe."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.error("Readiness check failed")
        return {"status": "not ready"}
