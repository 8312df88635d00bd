"""
User repository containing all data-access operations for the usr table.

Repository rules:
- Pure data-access logic only
- The credential hash never leaves this module
- An unknown username and a wrong password are reported identically
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from togo.core.constants import DEFAULT_MAX_TODO, AuthFailure
from togo.core.errors import AuthError, StoreClosedError, StoreFailure
from togo.core.security import DUMMY_PASSWORD_HASH, hash_password, verify_password
from togo.db.models.user import User
from togo.db.session import Database, deadline, store_failure

INVALID_CREDENTIALS_MESSAGE = "username or password is not correct"


@dataclass(frozen=True)
class UserRecord:
    """A validated user: identity plus daily quota."""

    id: int
    username: str
    max_todo: int

    @classmethod
    def from_model(cls, user: User) -> UserRecord:
        return cls(id=user.id, username=user.username, max_todo=user.max_todo)


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user row by username (exact match)."""
    stmt = select(User).where(User.username == username)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    max_todo: int = DEFAULT_MAX_TODO,
) -> UserRecord:
    """Create a new user with a hashed password (administrative path)."""
    if max_todo < 0:
        raise ValueError("max_todo must be >= 0")
    user = User(
        username=username.strip(),
        credential_hash=hash_password(password),
        max_todo=max_todo,
    )
    db.add(user)
    await db.flush()
    return UserRecord.from_model(user)


async def get_user(db: Database, user_id: int, *, timeout: float | None = None) -> UserRecord | None:
    """Fetch a user by primary key."""
    try:
        async with deadline(timeout, "get_user"), db.session() as session:
            user = await session.get(User, user_id)
            return UserRecord.from_model(user) if user is not None else None
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("get_user", exc) from exc


async def validate_user(
    db: Database,
    username: str,
    password: str,
    *,
    timeout: float | None = None,
) -> UserRecord:
    """
    Return the user when `password` matches the stored bcrypt hash.

    Raises AuthError(INVALID_CREDENTIALS) for an unknown username and for
    a wrong password alike; a bcrypt check runs in both cases.  Store
    problems raise AuthError(STORE_FAILURE) chained from the cause.
    """
    try:
        async with deadline(timeout, "validate_user"), db.session() as session:
            user = await get_user_by_username(session, username)
    except (sa_exc.SQLAlchemyError, StoreFailure, StoreClosedError) as exc:
        raise AuthError(
            str(exc),
            reason=AuthFailure.STORE_FAILURE,
            operation="validate_user",
        ) from exc

    stored_hash = user.credential_hash if user is not None else DUMMY_PASSWORD_HASH
    matched = await asyncio.to_thread(verify_password, password, stored_hash)
    if not matched or user is None:
        raise AuthError(
            INVALID_CREDENTIALS_MESSAGE,
            reason=AuthFailure.INVALID_CREDENTIALS,
            operation="validate_user",
        )
    return UserRecord.from_model(user)
