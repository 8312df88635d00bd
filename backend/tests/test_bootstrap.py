# tests/test_bootstrap.py

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select, text

from togo.core.config import StoreConfig
from togo.core.constants import BOOTSTRAP_TASK_CONTENT, BOOTSTRAP_USERNAME
from togo.core.errors import SchemaError, StoreClosedError, StoreConnectionError
from togo.db.bootstrap import ensure_schema
from togo.db.models import Task, User
from togo.db.session import Database
from togo.repositories.tasks import count_tasks, list_tasks


async def _row_counts(db: Database) -> tuple[int, int]:
    async with db.session() as session:
        users = await session.scalar(select(func.count()).select_from(User))
        tasks = await session.scalar(select(func.count()).select_from(Task))
    return users, tasks


async def test_ensure_schema_is_idempotent(raw_db: Database) -> None:
    await ensure_schema(raw_db)
    first = await _row_counts(raw_db)

    await ensure_schema(raw_db)
    await ensure_schema(raw_db)

    assert await _row_counts(raw_db) == first == (1, 1)


async def test_bootstrap_seed_contents(db: Database, first_user) -> None:
    assert first_user.username == BOOTSTRAP_USERNAME
    assert first_user.max_todo == 5

    seeded = await list_tasks(db, first_user.id, date(2020, 6, 29))
    assert [t.content for t in seeded] == [BOOTSTRAP_TASK_CONTENT]
    assert await count_tasks(db, first_user.id, date(2020, 6, 30)) == 0


async def test_no_seed_into_populated_directory(raw_db: Database) -> None:
    await ensure_schema(raw_db, seed=False)
    assert await _row_counts(raw_db) == (0, 0)

    async with raw_db.transaction() as session:
        session.add(User(username="someoneElse", credential_hash="x", max_todo=1))

    await ensure_schema(raw_db)
    users, tasks = await _row_counts(raw_db)
    assert (users, tasks) == (1, 0)


async def test_conflicting_table_raises_schema_error(raw_db: Database) -> None:
    async with raw_db.transaction() as session:
        await session.execute(text("CREATE TABLE task (id INTEGER PRIMARY KEY, body TEXT)"))

    with pytest.raises(SchemaError) as excinfo:
        await ensure_schema(raw_db)

    assert excinfo.value.details["table"] == "task"
    assert "content" in excinfo.value.details["missing"]


async def test_shutdown_closes_handle(db: Database, first_user) -> None:
    await db.shutdown()
    await db.shutdown()  # idempotent

    assert db.closed
    with pytest.raises(StoreClosedError):
        await list_tasks(db, first_user.id)
    with pytest.raises(StoreClosedError):
        async with db.transaction():
            pass


async def test_connect_to_unreachable_store() -> None:
    config = StoreConfig(
        HOST="127.0.0.1",
        PORT=1,
        USERNAME="togo",
        PASSWORD="togo",
        NAME="togo",
    )
    with pytest.raises(StoreConnectionError) as excinfo:
        await Database.connect(config)
    assert excinfo.value.operation == "ping"


def test_store_config_requires_connection_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HOST", "PORT", "USERNAME", "PASSWORD", "NAME"):
        monkeypatch.delenv(f"TOGO_DB_{name}", raising=False)

    with pytest.raises(ValidationError):
        StoreConfig(_env_file=None)


def test_store_config_builds_asyncpg_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOGO_DB_HOST", "db.internal")
    monkeypatch.setenv("TOGO_DB_PORT", "5433")
    monkeypatch.setenv("TOGO_DB_USERNAME", "togo")
    monkeypatch.setenv("TOGO_DB_PASSWORD", "pw")
    monkeypatch.setenv("TOGO_DB_NAME", "todos")

    config = StoreConfig(_env_file=None)

    assert config.DATABASE_URL == "postgresql+asyncpg://togo:pw@db.internal:5433/todos"
    assert config.TIMEZONE == "UTC"
