# tests/test_users.py

from __future__ import annotations

import pytest

from togo.core.constants import AuthFailure
from togo.core.errors import AuthError
from togo.db.session import Database
from togo.repositories.users import UserRecord, get_user, validate_user


async def test_validate_returns_identity_and_quota(db: Database) -> None:
    user = await validate_user(db, "firstUser", "example")

    assert isinstance(user, UserRecord)
    assert user.username == "firstUser"
    assert user.max_todo == 5
    assert not hasattr(user, "credential_hash")


async def test_unknown_user_and_wrong_password_are_indistinguishable(db: Database) -> None:
    with pytest.raises(AuthError) as unknown:
        await validate_user(db, "nonexistent", "x")
    with pytest.raises(AuthError) as wrong:
        await validate_user(db, "firstUser", "wrong_password")

    assert unknown.value.reason == wrong.value.reason == AuthFailure.INVALID_CREDENTIALS
    assert str(unknown.value) == str(wrong.value)
    assert type(unknown.value) is type(wrong.value)
    assert unknown.value.details == wrong.value.details


async def test_username_match_is_exact(db: Database) -> None:
    with pytest.raises(AuthError) as excinfo:
        await validate_user(db, "FIRSTUSER", "example")
    assert excinfo.value.reason == AuthFailure.INVALID_CREDENTIALS


async def test_store_failure_is_tagged(db: Database) -> None:
    await db.shutdown()

    with pytest.raises(AuthError) as excinfo:
        await validate_user(db, "firstUser", "example")

    assert excinfo.value.reason == AuthFailure.STORE_FAILURE
    assert excinfo.value.__cause__ is not None


async def test_created_user_can_log_in(db: Database, make_user) -> None:
    created = await make_user("alice", max_todo=2, password="s3cret")

    assert await validate_user(db, "alice", "s3cret") == created
    assert await get_user(db, created.id) == created
    assert await get_user(db, created.id + 1000) is None


async def test_negative_quota_rejected(make_user) -> None:
    with pytest.raises(ValueError):
        await make_user("bob", max_todo=-1)
