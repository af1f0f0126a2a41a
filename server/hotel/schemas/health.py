"""Health-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: HealthStatus = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    version: str = Field("1.0.0", description="API version")


class ReadinessResponse(BaseModel):
    """Readiness probe response schema."""

    status: str = Field(..., description="'ready' or 'not ready'")
    database: str = Field(..., description="'connected' or 'disconnected'")


class InfoResponse(BaseModel):
    """Service information response schema."""

    name: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    environment: str = Field(..., description="Deployment environment")
    currency: str = Field(..., description="Currency every amount is expressed in")
    reservation_hold_minutes: int = Field(..., description="How long pending reservations hold their dates")
