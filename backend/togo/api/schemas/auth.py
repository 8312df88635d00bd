"""Authentication request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from togo.core.constants import USERNAME_MAX_LENGTH


class LoginRequest(BaseModel):
    """Request payload for login endpoint."""

    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LENGTH)
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    """Bearer access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., ge=1)
