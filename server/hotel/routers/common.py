"""Helpers shared by the API routers."""

import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ProblemDetailsException, StoreError
from ..core.security import Caller
from ..services.idempotency_service import IdempotencyService, StoredResponse, scoped_operation

logger = logging.getLogger(__name__)

# Define dependencies to avoid B008 linting errors
IDEMPOTENCY_KEY_HEADER = Header(None, alias="Idempotency-Key", max_length=255)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def unexpected_error(operation: str, error: Exception, **context: Any) -> StoreError:
    """Log an unexpected failure and build the 500 Problem Details raised in its place."""
    problem = StoreError()
    logger.error(
        f"Unexpected error in {operation}",
        extra={"error_id": problem.error_id, "error": str(error), **context},
        exc_info=True
    )
    return problem


async def run_idempotent(
    operation_name: str,
    caller: Caller,
    idempotency_key: Optional[str],
    request_body: dict[str, Any],
    operation: Callable[[], Awaitable[dict[str, Any]]],
    db: AsyncSession,
    status_code: int = 200,
) -> JSONResponse:
    """
    Run a mutating operation, replaying the stored outcome for a repeated key.

    Without an Idempotency-Key the operation simply runs. With one, a stored
    response for the same caller, key and body is returned as-is, a different
    body is rejected, and the outcome is stored. Retryable failures and
    server errors are not stored so the client can retry under the same key.
    """
    if not idempotency_key:
        return JSONResponse(status_code=status_code, content=await operation())

    idempotency_service = IdempotencyService(db)
    scope = scoped_operation(operation_name, caller)

    stored = await idempotency_service.check_idempotency(idempotency_key, scope, request_body)
    if stored:
        return JSONResponse(
            status_code=stored.status_code,
            content=stored.body,
            headers=stored.headers or {},
            media_type=PROBLEM_MEDIA_TYPE if stored.status_code >= 400 else None,
        )

    try:
        response_body = await operation()
    except ProblemDetailsException as e:
        if not e.retryable and e.status_code < 500:
            await idempotency_service.store_response(
                idempotency_key, scope, request_body, StoredResponse(e.status_code, e.problem_details)
            )
        raise

    await idempotency_service.store_response(
        idempotency_key, scope, request_body, StoredResponse(status_code, response_body)
    )
    return JSONResponse(status_code=status_code, content=response_body)
