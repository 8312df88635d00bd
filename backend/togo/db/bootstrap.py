"""
Schema bootstrap — create tables/indexes and seed an empty user directory.

`ensure_schema()` runs on every start-up.  It only creates what is
missing, refuses to proceed when an existing table lacks expected
columns, and seeds the bootstrap user only into an empty `usr` table.
Concurrent callers (several replicas booting at once) are serialised by
a PostgreSQL advisory lock, or by SQLite's write lock.
"""

from __future__ import annotations

from sqlalchemy import func, inspect, select, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncSession

from togo.core.constants import (
    BOOTSTRAP_PASSWORD,
    BOOTSTRAP_TASK_CONTENT,
    BOOTSTRAP_TASK_CREATED_AT,
    BOOTSTRAP_USERNAME,
    DEFAULT_MAX_TODO,
)
from togo.core.errors import SchemaError
from togo.core.logging import get_logger
from togo.core.security import hash_password
from togo.db.models import Base, Task, User
from togo.db.session import Database, store_failure

logger = get_logger(__name__)

# Arbitrary key shared by every process running ensure_schema().
SCHEMA_LOCK_KEY = 0x70_67_6F


def _create_and_verify(conn: Connection) -> None:
    Base.metadata.create_all(conn, checkfirst=True)

    inspector = inspect(conn)
    for table in Base.metadata.sorted_tables:
        existing = {col["name"] for col in inspector.get_columns(table.name)}
        missing = sorted(set(table.columns.keys()) - existing)
        if missing:
            raise SchemaError(
                f"table {table.name!r} exists but lacks columns {missing}",
                operation="ensure_schema",
                details={"table": table.name, "missing": missing},
            )


async def _seed_if_empty(session: AsyncSession) -> None:
    user_count = await session.scalar(select(func.count()).select_from(User))
    if user_count:
        return

    user = User(
        username=BOOTSTRAP_USERNAME,
        credential_hash=hash_password(BOOTSTRAP_PASSWORD),
        max_todo=DEFAULT_MAX_TODO,
    )
    session.add(user)
    await session.flush()
    session.add(
        Task(
            usr_id=user.id,
            content=BOOTSTRAP_TASK_CONTENT,
            created_at=BOOTSTRAP_TASK_CREATED_AT,
        )
    )
    await session.flush()
    logger.info("Seeded bootstrap user", username=BOOTSTRAP_USERNAME, user_id=user.id)


async def ensure_schema(db: Database, *, seed: bool = True) -> None:
    """Idempotently create the schema and seed the bootstrap user."""
    try:
        async with db.transaction(lock_writes=True) as session:
            if db.dialect == "postgresql":
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"), {"key": SCHEMA_LOCK_KEY}
                )

            conn = await session.connection()
            await conn.run_sync(_create_and_verify)

            if seed:
                await _seed_if_empty(session)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("ensure_schema", exc) from exc

    logger.info("Schema ready", dialect=db.dialect)
