"""Common Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.config import settings


class Money(BaseModel):
    """Money representation with amount in minor units."""

    amount: int = Field(..., ge=0, description="Amount in minor units (e.g., cents)")
    currency: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")

    @classmethod
    def of(cls, amount: int) -> "Money":
        """Build an amount in the configured currency."""
        return cls(amount=amount, currency=settings.currency)


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(None, description="Application-specific error code")
    retryable: Optional[bool] = Field(None, description="Whether the operation can be retried")
    error_id: Optional[str] = Field(None, description="Identifier for correlating server-side errors")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


class MessageResponse(BaseModel):
    """Plain acknowledgement response."""

    message: str = Field(..., description="Human-readable result")
