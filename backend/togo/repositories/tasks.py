"""
Task repository containing all data-access operations for the task table.

Repository rules:
- Session-level functions flush, but never commit
- A "day" is the half-open range [00:00, next 00:00) in the store
  timezone; ranges (rather than casting `created_at` to a date) keep the
  (usr_id, created_at) index usable
- Counting/listing never checks that the user exists
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from sqlalchemy import func, insert, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from togo.core.errors import ForeignKeyError, StoreFailure
from togo.db.models.base import store_now
from togo.db.models.task import Task
from togo.db.session import Database, deadline, store_failure

FOREIGN_KEY_VIOLATION = "23503"


@dataclass(frozen=True)
class TaskRecord:
    """A stored task."""

    id: int
    user_id: int
    content: str
    created_at: datetime

    @classmethod
    def from_model(cls, task: Task) -> TaskRecord:
        return cls(
            id=task.id,
            user_id=task.usr_id,
            content=task.content,
            created_at=task.created_at,
        )


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return `[start, end)` covering `day` in timezone `tz`."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def _is_foreign_key_violation(exc: sa_exc.IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "sqlstate", None) == FOREIGN_KEY_VIOLATION:
        return True
    if getattr(orig, "pgcode", None) == FOREIGN_KEY_VIOLATION:
        return True
    # sqlite3 reports no code, only the message.
    return "FOREIGN KEY constraint failed" in str(orig)


# ─── Session-level primitives ─────────────────

async def count_tasks_on_day(
    db: AsyncSession,
    user_id: int,
    day: date,
    tz: tzinfo,
) -> int:
    """Number of tasks `user_id` created on `day`; 0 when there are none."""
    start, end = day_bounds(day, tz)
    stmt = (
        select(func.count())
        .select_from(Task)
        .where(
            Task.usr_id == user_id,
            Task.created_at >= start,
            Task.created_at < end,
        )
    )
    try:
        count = await db.scalar(stmt)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("count_tasks_on_day", exc) from exc
    return int(count or 0)


async def list_tasks_on_day(
    db: AsyncSession,
    user_id: int,
    day: date,
    tz: tzinfo,
) -> list[TaskRecord]:
    """Tasks `user_id` created on `day`, ordered by id."""
    start, end = day_bounds(day, tz)
    stmt = (
        select(Task)
        .where(
            Task.usr_id == user_id,
            Task.created_at >= start,
            Task.created_at < end,
        )
        .order_by(Task.id.asc())
    )
    try:
        result = await db.execute(stmt)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("list_tasks_on_day", exc) from exc
    return [TaskRecord.from_model(task) for task in result.scalars().all()]


async def read_store_clock(db: AsyncSession) -> datetime:
    """Return the store's current time (aware UTC)."""
    try:
        return await db.scalar(select(store_now()))
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("read_store_clock", exc) from exc


async def insert_task(
    db: AsyncSession,
    owner_id: int,
    content: str,
    *,
    created_at: datetime | None = None,
) -> TaskRecord:
    """
    Insert a task stamped with the store's clock.

    `created_at` must itself be a reading of that clock (see
    `read_store_clock`); it pins the stamp to the instant a caller already
    used for its own decisions.

    Raises ForeignKeyError when `owner_id` is not a user, and StoreFailure
    for any other write problem, including an insert that returns no row.
    """
    if not content or not content.strip():
        raise ValueError("content is required")

    stmt = (
        insert(Task)
        .values(usr_id=owner_id, content=content, created_at=created_at or store_now())
        .returning(Task.id, Task.usr_id, Task.content, Task.created_at)
    )
    try:
        result = await db.execute(stmt)
        row = result.one_or_none()
    except sa_exc.IntegrityError as exc:
        if _is_foreign_key_violation(exc):
            raise ForeignKeyError(
                f"user {owner_id} does not exist",
                user_id=owner_id,
                operation="insert_task",
            ) from exc
        raise store_failure("insert_task", exc) from exc
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("insert_task", exc) from exc

    if row is None:
        raise StoreFailure("failed to insert, no rows affected", operation="insert_task")

    return TaskRecord(
        id=row.id,
        user_id=row.usr_id,
        content=row.content,
        created_at=row.created_at,
    )


# ─── Database-level operations ────────────────

async def count_tasks(
    db: Database,
    user_id: int,
    day: date | None = None,
    *,
    timeout: float | None = None,
) -> int:
    """Count a user's tasks on `day` (default: today in the store timezone)."""
    day = day or db.today()
    try:
        async with deadline(timeout, "count_tasks"), db.session() as session:
            return await count_tasks_on_day(session, user_id, day, db.timezone)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("count_tasks", exc) from exc


async def list_tasks(
    db: Database,
    user_id: int,
    day: date | None = None,
    *,
    timeout: float | None = None,
) -> list[TaskRecord]:
    """List a user's tasks on `day` (default: today in the store timezone)."""
    day = day or db.today()
    try:
        async with deadline(timeout, "list_tasks"), db.session() as session:
            return await list_tasks_on_day(session, user_id, day, db.timezone)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("list_tasks", exc) from exc


async def add_task(
    db: Database,
    owner_id: int,
    content: str,
    *,
    timeout: float | None = None,
) -> TaskRecord:
    """
    Insert one task in its own transaction, without a quota check.

    Request handlers should go through `togo.services.quota` instead.
    """
    try:
        async with deadline(timeout, "add_task"), db.transaction() as session:
            task = await insert_task(session, owner_id, content)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("add_task", exc) from exc
    return task
