"""Stored outcomes of mutating requests sent with an Idempotency-Key."""

import hashlib
import json
import logging
from datetime import timedelta
from typing import Any, NamedTuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, utcnow
from ..core.config import settings
from ..core.exceptions import PROBLEM_BASE_URI, ProblemDetailsException
from ..core.security import Caller
from ..models.idempotency import IdempotencyRecord

logger = logging.getLogger(__name__)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(',', ':'), default=str)


def scoped_operation(operation: str, caller: Caller) -> str:
    """Operation name namespaced by caller, so two users never share a key."""
    return f"{operation}:{caller.user_id}"


class StoredResponse(NamedTuple):
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] | None = None


class IdempotencyMismatchError(ProblemDetailsException):
    """Exception when an idempotency key is reused with a different request body."""

    def __init__(self, idempotency_key: str, operation: str):
        super().__init__(
            status_code=422,
            title="Idempotency Key Mismatch",
            detail=f"Idempotency key '{idempotency_key}' was already used for '{operation}' with a different request body",
            code="IDEMPOTENCY_KEY_MISMATCH",
            type_uri=f"{PROBLEM_BASE_URI}/idempotency-key-mismatch",
            extensions={
                "idempotency_key": idempotency_key,
                "operation": operation,
            },
        )


class IdempotencyService:
    """Service for replaying the outcome of repeated requests."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    @staticmethod
    def request_fingerprint(request_body: dict[str, Any]) -> str:
        """SHA-256 of the request body with keys sorted."""
        return hashlib.sha256(_canonical_json(request_body).encode('utf-8')).hexdigest()

    async def _live_record(self, idempotency_key: str, operation: str) -> IdempotencyRecord | None:
        result = await self.db.execute(
            select(IdempotencyRecord).where(
                IdempotencyRecord.idempotency_key == idempotency_key,
                IdempotencyRecord.method == operation,
                IdempotencyRecord.expires_at > self.clock()
            )
        )
        return result.scalar_one_or_none()

    async def check_idempotency(
        self,
        idempotency_key: str,
        operation: str,
        request_body: dict[str, Any],
    ) -> StoredResponse | None:
        """
        Look up the stored outcome for a key.

        Args:
            idempotency_key: Client-supplied key
            operation: Scoped operation name, see ``scoped_operation``
            request_body: Request body to compare against the stored fingerprint

        Returns:
            The stored response, or None if the key is new or has expired

        Raises:
            IdempotencyMismatchError: If the key was used with a different body
        """
        fingerprint = self.request_fingerprint(request_body)
        record = await self._live_record(idempotency_key, operation)

        if record is None:
            logger.debug(
                "No live idempotency record",
                extra={"idempotency_key": idempotency_key, "operation": operation, "fingerprint": fingerprint[:8]}
            )
            return None

        if record.request_body_hash != fingerprint:
            logger.warning(
                "Idempotency key mismatch",
                extra={
                    "idempotency_key": idempotency_key,
                    "operation": operation,
                    "existing_hash": record.request_body_hash[:8],
                    "new_hash": fingerprint[:8]
                }
            )
            raise IdempotencyMismatchError(idempotency_key, operation)

        headers = None
        if record.response_headers:
            try:
                headers = json.loads(record.response_headers)
            except json.JSONDecodeError:
                logger.warning(
                    "Stored response headers are not valid JSON",
                    extra={"idempotency_key": idempotency_key, "operation": operation}
                )

        logger.info(
            "Replaying stored response",
            extra={
                "idempotency_key": idempotency_key,
                "operation": operation,
                "status_code": record.response_status_code,
            }
        )
        return StoredResponse(record.response_status_code, json.loads(record.response_body), headers)

    async def store_response(
        self,
        idempotency_key: str,
        operation: str,
        request_body: dict[str, Any],
        response: StoredResponse,
        ttl_hours: int | None = None
    ) -> None:
        """
        Remember the outcome of a request until ``ttl_hours`` pass.

        A concurrent request that stored the same key first wins; this call
        then leaves its record untouched.
        """
        expires_at = self.clock() + timedelta(hours=ttl_hours or settings.idempotency_ttl_hours)
        record = IdempotencyRecord(
            idempotency_key=idempotency_key,
            method=operation,
            request_body_hash=self.request_fingerprint(request_body),
            response_status_code=response.status_code,
            response_body=_canonical_json(response.body),
            response_headers=_canonical_json(response.headers) if response.headers else None,
            expires_at=expires_at
        )

        try:
            self.db.add(record)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(
                "Idempotency record already stored by a concurrent request",
                extra={"idempotency_key": idempotency_key, "operation": operation, "error": str(e)}
            )
            return

        logger.info(
            "Stored idempotency record",
            extra={
                "idempotency_key": idempotency_key,
                "operation": operation,
                "status_code": response.status_code,
                "expires_at": expires_at.isoformat()
            }
        )

    async def cleanup_expired_records(self) -> int:
        """Delete expired records and return how many were removed."""
        result = await self.db.execute(
            delete(IdempotencyRecord).where(IdempotencyRecord.expires_at <= self.clock())
        )
        deleted_count = result.rowcount
        await self.db.commit()

        if deleted_count > 0:
            logger.info("Cleaned up expired idempotency records", extra={"deleted_count": deleted_count})

        return deleted_count
