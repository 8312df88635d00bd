"""Password hashing (bcrypt) and access tokens (JWT)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from togo.core.config import settings


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of `password`."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    """Check `password` against a stored bcrypt hash (salt is read from the hash)."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        # Malformed stored hash.
        return False


# Checked when the username is unknown so both failure paths cost a bcrypt round.
DUMMY_PASSWORD_HASH = hash_password("togo-dummy-password")


def create_access_token(
    claims: dict[str, Any],
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign `claims` into a JWT with an `exp` claim."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the token payload, or None when it is invalid or expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
