"""
Service liveness endpoint with a database check.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_database, get_registry
from src.api.models import ComponentHealth, Envelope, ok
from src.ingestion.registry import AdapterRegistry
from src.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Database health check failed", error=str(e))
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get("/health", response_model=Envelope, summary="Service liveness")
async def health_check(
    db: Database = Depends(get_database),
    registry: AdapterRegistry = Depends(get_registry),
) -> dict:
    """
    Report service health.

    Returns "healthy" when the database answers, "unhealthy" otherwise.
    Source health is tracked per data source, not here.
    """
    database = await _check_database(db)
    return ok(
        {
            "status": database.status,
            "components": {"database": database.model_dump()},
            "adapters": registry.names(),
        }
    )
