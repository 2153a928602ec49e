"""Health check endpoint.

Verifies database connectivity and returns structured status.
Used by Docker healthchecks, load balancers, and monitoring systems.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from sqlalchemy import text

from pet_lifecycle import __version__
from pet_lifecycle.api.deps import resolve_session_factory
from pet_lifecycle.logging_config import get_logger
from pet_lifecycle.schemas.lifecycle import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its database.",
)
async def health_check(request: Request) -> HealthResponse:
    """Check database connectivity."""
    try:
        async with resolve_session_factory(request)() as session:
            await session.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if db_status == "healthy" else "degraded",
        version=__version__,
        database=db_status,
    )
