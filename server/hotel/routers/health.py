"""Health, readiness and service information routers."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import utcnow
from ..core.config import settings
from ..core.dependencies import DatabaseSession
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus, InfoResponse, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])

# Probe endpoints live at the root for load balancers and orchestrators
probes_router = APIRouter(tags=["Health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """
    Health check endpoint.

    Returns current service status and timestamp.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=utcnow(),
        version=SERVICE_VERSION
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status.value,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


@probes_router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Liveness probe; does not touch the database."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.environment,
    }


@probes_router.get("/ready", response_model=ReadinessResponse, summary="Readiness Check")
async def readiness_check(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """Readiness probe; verifies the database answers a trivial query."""
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        response_data = ReadinessResponse(status="not ready", database="disconnected")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response_data.model_dump(mode="json")
        )

    response_data = ReadinessResponse(status="ready", database="connected")
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@probes_router.get("/info", response_model=InfoResponse, summary="Service Information")
async def service_info() -> JSONResponse:
    response_data = InfoResponse(
        name=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment=settings.environment,
        currency=settings.currency,
        reservation_hold_minutes=settings.reservation_hold_minutes,
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
