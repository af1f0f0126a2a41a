"""FastAPI dependencies for database sessions and caller identity."""

from typing import Optional

from fastapi import Depends, Header

from .database import get_db
from .exceptions import AuthorizationError, AuthRequiredError
from .security import ADMIN_ROLE, Caller, TokenStore, decode_access_token, token_store


def get_token_store() -> TokenStore:
    """Token store dependency; override to plug in a shared store."""
    return token_store


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthRequiredError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthRequiredError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthRequiredError(detail="Invalid authentication scheme")

    return token


async def get_current_caller(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    store: TokenStore = Depends(get_token_store),
) -> Caller:
    """
    Authentication dependency that validates Bearer tokens.

    Returns:
        Caller: Identity taken from the validated token

    Raises:
        AuthRequiredError: If the token is missing, invalid, or revoked
    """
    token = _extract_bearer_token(authorization)
    return decode_access_token(token, store)


async def get_optional_caller(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    store: TokenStore = Depends(get_token_store),
) -> Optional[Caller]:
    """Like ``get_current_caller`` but anonymous requests yield None."""
    if not authorization:
        return None
    return decode_access_token(_extract_bearer_token(authorization), store)


async def get_admin_caller(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Require an authenticated caller holding the admin role."""
    if not caller.is_admin:
        raise AuthorizationError(
            detail="Administrator access required",
            required_roles=[ADMIN_ROLE],
        )
    return caller


# Reusable dependency markers (avoid B008 in signatures)
DatabaseSession = Depends(get_db)
RequiredAuth = Depends(get_current_caller)
OptionalAuth = Depends(get_optional_caller)
AdminAuth = Depends(get_admin_caller)
