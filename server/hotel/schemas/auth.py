"""Authentication-related Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class AuthCheckResponse(BaseModel):
    """Identity of the presented bearer token."""

    authenticated: bool = Field(..., description="Whether a valid token was presented")
    user_id: Optional[str] = Field(None, description="Token subject")
    username: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    roles: List[str] = Field(default_factory=list, description="Granted roles")
    is_admin: bool = Field(False, description="Whether the caller is an administrator")
