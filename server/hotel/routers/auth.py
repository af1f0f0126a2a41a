"""Authentication router: token introspection and logout."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.dependencies import OptionalAuth, RequiredAuth, get_token_store
from ..core.security import Caller, TokenStore
from ..schemas.auth import AuthCheckResponse
from ..schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.get("/check", response_model=AuthCheckResponse)
async def check_auth(caller: Optional[Caller] = OptionalAuth) -> JSONResponse:
    """Report who the presented bearer token identifies, if anyone."""
    if caller is None:
        response_data = AuthCheckResponse(authenticated=False)
    else:
        response_data = AuthCheckResponse(
            authenticated=True,
            user_id=caller.user_id,
            username=caller.username,
            email=caller.email,
            roles=list(caller.roles),
            is_admin=caller.is_admin,
        )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    caller: Caller = RequiredAuth,
    store: TokenStore = Depends(get_token_store),
) -> JSONResponse:
    """Revoke the presented bearer token."""
    if caller.token_id:
        store.revoke(caller.token_id, caller.expires_at)

    logger.info("Caller logged out", extra={"user_id": caller.user_id})

    response_data = MessageResponse(message="Logged out")
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
