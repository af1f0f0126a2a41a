"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://hotel.example.com/problems"


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    Every subclass carries a stable machine-readable ``code`` and a
    ``retryable`` flag next to the human-readable ``detail``.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        code: str = "ERROR",
        retryable: bool = False,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            code: Stable machine-readable error kind
            retryable: Whether repeating the whole request may succeed
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.code = code
        self.retryable = retryable
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        # Create the problem details object
        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "code": self.code,
            "retryable": self.retryable,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        # Add extensions
        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )


class ValidationError(ProblemDetailsException):
    """Exception for missing or malformed input."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            code="VALIDATION_ERROR",
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            instance=instance,
            extensions=extensions,
        )


class PastDateError(ProblemDetailsException):
    """Exception when a stay starts before the engine's current date."""

    def __init__(self, check_in: date, today: date):
        super().__init__(
            status_code=400,
            title="Check-in Date In The Past",
            detail=f"Check-in date {check_in.isoformat()} cannot be before {today.isoformat()}",
            code="PAST_DATE",
            type_uri=f"{PROBLEM_BASE_URI}/past-date",
            extensions={
                "check_in_date": check_in.isoformat(),
                "today": today.isoformat(),
            },
        )


class InvalidRangeError(ProblemDetailsException):
    """Exception when check-out does not come after check-in."""

    def __init__(self, check_in: date, check_out: date):
        super().__init__(
            status_code=400,
            title="Invalid Date Range",
            detail=(
                f"Check-out date {check_out.isoformat()} must be after "
                f"check-in date {check_in.isoformat()}"
            ),
            code="INVALID_RANGE",
            type_uri=f"{PROBLEM_BASE_URI}/invalid-range",
            extensions={
                "check_in_date": check_in.isoformat(),
                "check_out_date": check_out.isoformat(),
            },
        )


class CapacityExceededError(ProblemDetailsException):
    """Exception when the guest count is larger than the room type allows."""

    def __init__(self, room_id: int, guests_count: int, max_occupancy: int):
        super().__init__(
            status_code=400,
            title="Capacity Exceeded",
            detail=f"Guest count {guests_count} exceeds room capacity of {max_occupancy}",
            code="CAPACITY_EXCEEDED",
            type_uri=f"{PROBLEM_BASE_URI}/capacity-exceeded",
            extensions={
                "room_id": room_id,
                "guests_count": guests_count,
                "max_occupancy": max_occupancy,
            },
        )


class AuthRequiredError(ProblemDetailsException):
    """Exception for missing or invalid caller credentials."""

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            detail=detail,
            code="AUTH_REQUIRED",
            type_uri=f"{PROBLEM_BASE_URI}/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(ProblemDetailsException):
    """Exception for authorization errors."""

    def __init__(
        self,
        detail: str = "Insufficient permissions to access this resource",
        required_roles: Optional[List[str]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if required_roles:
            extensions["required_roles"] = required_roles

        super().__init__(
            status_code=403,
            title="Access Forbidden",
            detail=detail,
            code="FORBIDDEN",
            type_uri=f"{PROBLEM_BASE_URI}/access-forbidden",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[Any] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id is not None:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id is not None:
            extensions["resource_id"] = str(resource_id)

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            code="NOT_FOUND",
            type_uri=f"{PROBLEM_BASE_URI}/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        code: str = "CONFLICT",
        title: str = "Resource Conflict",
        type_uri: Optional[str] = None,
        retryable: bool = False,
        headers: Optional[Dict[str, str]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title=title,
            detail=detail,
            code=code,
            retryable=retryable,
            type_uri=type_uri or f"{PROBLEM_BASE_URI}/resource-conflict",
            instance=instance,
            extensions=extensions,
            headers=headers,
        )


class RoomUnavailableError(ConflictError):
    """Exception when a room cannot be booked for the requested dates."""

    def __init__(self, room_id: int, check_in: date, check_out: date, reason: str = "booked"):
        super().__init__(
            detail=(
                f"Room {room_id} is not available from {check_in.isoformat()} "
                f"to {check_out.isoformat()}"
            ),
            conflicting_resource={
                "room_id": room_id,
                "check_in_date": check_in.isoformat(),
                "check_out_date": check_out.isoformat(),
                "reason": reason,
            },
            code="ROOM_UNAVAILABLE",
            title="Room Unavailable",
            type_uri=f"{PROBLEM_BASE_URI}/room-unavailable",
        )
        self.reason = reason


class ConflictRetryableError(ConflictError):
    """Exception when the store aborted a transaction because of contention."""

    def __init__(self, operation: str, retry_after: int = 1):
        super().__init__(
            detail=f"The {operation} was aborted by concurrent activity; retry the request",
            code="CONFLICT_RETRYABLE",
            title="Concurrent Update Conflict",
            type_uri=f"{PROBLEM_BASE_URI}/conflict-retryable",
            retryable=True,
            headers={"Retry-After": str(retry_after)},
        )


class DeadlineExceededError(ProblemDetailsException):
    """Exception when an operation did not finish before its deadline."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            status_code=504,
            title="Deadline Exceeded",
            detail=f"The {operation} did not complete within {timeout_seconds:g} seconds and was rolled back",
            code="DEADLINE_EXCEEDED",
            retryable=True,
            type_uri=f"{PROBLEM_BASE_URI}/deadline-exceeded",
            extensions={"timeout_seconds": timeout_seconds},
        )


class StoreError(ProblemDetailsException):
    """Exception for unexpected persistence failures."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred while processing the request",
        error_id: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not error_id:
            error_id = str(uuid.uuid4())

        super().__init__(
            status_code=500,
            title="Internal Server Error",
            detail=detail,
            code="STORE_ERROR",
            type_uri=f"{PROBLEM_BASE_URI}/internal-server-error",
            instance=instance,
            extensions={
                "error_id": error_id,
                "timestamp": _timestamp(),
            },
        )
        self.error_id = error_id


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request schema violations as Problem Details with a ``violations`` list.

    Args:
        request: FastAPI request object
        exc: Validation error raised by FastAPI

    Returns:
        JSONResponse: 422 Problem Details response
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{PROBLEM_BASE_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "The request data failed validation",
            "code": "VALIDATION_ERROR",
            "retryable": False,
            "instance": str(request.url),
            "violations": violations,
        },
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
        }
    )

    problem_details = {
        "type": f"{PROBLEM_BASE_URI}/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "code": "INTERNAL_ERROR",
        "retryable": False,
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": _timestamp(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
