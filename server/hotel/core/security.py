"""Caller identity, bearer tokens and the revoked-token store."""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

import jwt
from jwt import PyJWTError

from .clock import utcnow
from .config import settings
from .exceptions import AuthRequiredError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Caller:
    """Authenticated identity passed explicitly into every service call."""

    user_id: str
    username: str | None = None
    email: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    token_id: str | None = None
    expires_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    @property
    def display_name(self) -> str:
        return self.username or self.user_id


class TokenStore(Protocol):
    """Session store consulted for revoked bearer tokens."""

    def revoke(self, token_id: str, expires_at: datetime | None) -> None: ...

    def is_revoked(self, token_id: str) -> bool: ...


class InMemoryTokenStore:
    """
    Process-local token store.

    Revocations are kept until the token itself would have expired; a
    shared store (database or cache) should replace it when running more
    than one worker.
    """

    def __init__(self, default_ttl: timedelta = timedelta(hours=24)):
        self._revoked: dict[str, datetime] = {}
        self._default_ttl = default_ttl
        self._lock = threading.Lock()

    def _purge(self, now: datetime) -> None:
        expired = [token_id for token_id, until in self._revoked.items() if until <= now]
        for token_id in expired:
            del self._revoked[token_id]

    def revoke(self, token_id: str, expires_at: datetime | None) -> None:
        now = utcnow()
        with self._lock:
            self._purge(now)
            self._revoked[token_id] = expires_at or now + self._default_ttl

    def is_revoked(self, token_id: str) -> bool:
        with self._lock:
            self._purge(utcnow())
            return token_id in self._revoked


def create_access_token(
    user_id: str,
    roles: list[str] | tuple[str, ...] = (),
    username: str | None = None,
    email: str | None = None,
    expires_in: timedelta = timedelta(hours=12),
    secret: str | None = None,
) -> str:
    """
    Issue a signed bearer token.

    The hotel API only verifies tokens; this helper exists for trusted
    issuers, seed scripts and tests.
    """
    issued_at = utcnow()
    payload = {
        "sub": user_id,
        "username": username,
        "email": email,
        "roles": list(roles),
        "jti": uuid.uuid4().hex,
        "iat": int((issued_at - datetime(1970, 1, 1)).total_seconds()),
        "exp": int((issued_at + expires_in - datetime(1970, 1, 1)).total_seconds()),
    }
    return jwt.encode(payload, secret or settings.bearer_token_secret, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str, token_store: TokenStore, secret: str | None = None) -> Caller:
    """
    Verify a bearer token and build the caller it identifies.

    Raises:
        AuthRequiredError: If the token is malformed, expired, or revoked
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.bearer_token_secret,
            algorithms=[TOKEN_ALGORITHM],
        )
    except PyJWTError as e:
        logger.info("Bearer token rejected", extra={"reason": str(e)})
        raise AuthRequiredError(detail=f"Token validation failed: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthRequiredError(detail="Invalid token payload")

    token_id = payload.get("jti")
    if token_id and token_store.is_revoked(token_id):
        raise AuthRequiredError(detail="Token has been revoked")

    exp = payload.get("exp")
    expires_at = datetime(1970, 1, 1) + timedelta(seconds=exp) if exp else None

    return Caller(
        user_id=str(user_id),
        username=payload.get("username"),
        email=payload.get("email"),
        roles=tuple(payload.get("roles") or ()),
        token_id=token_id,
        expires_at=expires_at,
    )


# Global token store instance
token_store = InMemoryTokenStore()
