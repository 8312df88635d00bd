"""Authentication endpoint issuing bearer tokens."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from togo.api.deps import get_database
from togo.api.schemas.auth import LoginRequest, TokenResponse
from togo.core.config import settings
from togo.core.constants import AuthFailure
from togo.core.errors import AuthError
from togo.core.logging import get_logger
from togo.core.security import create_access_token
from togo.db.session import Database
from togo.repositories import users as user_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: Database = Depends(get_database)) -> TokenResponse:
    """Authenticate a user and issue an access token."""
    try:
        user = await user_repository.validate_user(db, payload.username, payload.password)
    except AuthError as exc:
        if exc.reason == AuthFailure.STORE_FAILURE:
            logger.error("Credential check failed", error=str(exc))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service temporarily unavailable",
            ) from exc
        logger.info("Login rejected", username=payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from exc

    access_token = create_access_token({"sub": str(user.id)})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
