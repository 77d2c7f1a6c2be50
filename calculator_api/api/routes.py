"""
Service Routes - Health check for the load balancer.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from calculator_api.config import settings
from calculator_api.db.session import get_db
from calculator_api.models.api import HealthResponse
from calculator_api.observability.metrics import metrics

logger = get_logger(__name__)

router = APIRouter(tags=["service"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Report healthy only while the database answers."""
    checked_at = datetime.now(UTC).isoformat()

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.error("health_check_failed", error=str(exc))
        metrics.record_error(type(exc).__name__, "health_check")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "unhealthy",
                "database": "disconnected",
                "version": settings.api_version,
                "timestamp": checked_at,
            },
        ) from exc

    return HealthResponse(
        status="healthy",
        database="connected",
        version=settings.api_version,
        timestamp=checked_at,
    )
