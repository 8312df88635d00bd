"""Shared dependencies for API routes."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from togo.core.security import decode_access_token
from togo.db.session import Database

security_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    """Return the Database handle owned by the application."""
    return request.app.state.db


async def get_current_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> dict[str, Any]:
    """Extract and validate JWT payload from bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided",
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return payload


async def get_current_user_id(
    token_payload: dict[str, Any] = Depends(get_current_token_payload),
) -> int:
    """Resolve the authenticated user id from the JWT subject."""
    subject = token_payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from None
