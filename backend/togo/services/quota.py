"""
Quota-enforced task creation.

Counting today's tasks and inserting a new one happen in ONE transaction
that first locks the owner's `usr` row:

    BEGIN
    SELECT max_todo FROM usr WHERE id = :user_id FOR UPDATE
    SELECT now()                    -- the store's clock decides "today"
    SELECT count(*) FROM task WHERE usr_id = :user_id AND <today>
    INSERT INTO task ... created_at = <that now()>   -- only when count < max_todo
    COMMIT

A second request for the same user blocks on the row lock until the first
commits, then sees its task in the count.  Requests for other users lock
other rows and proceed in parallel.  SQLite has no row locks; there the
transaction opens with BEGIN IMMEDIATE, which serialises all writers.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from togo.core.constants import QuotaViolation
from togo.core.errors import ForeignKeyError, QuotaError
from togo.db.models.user import User
from togo.db.session import Database, deadline, store_failure
from togo.repositories.tasks import TaskRecord, count_tasks_on_day, insert_task, read_store_clock


async def lock_user_quota(db: AsyncSession, user_id: int) -> int:
    """Lock the user's row for the rest of the transaction and return `max_todo`."""
    stmt = select(User.max_todo).where(User.id == user_id).with_for_update()
    try:
        max_todo = await db.scalar(stmt)
    except sa_exc.SQLAlchemyError as exc:
        raise store_failure("lock_user_quota", exc) from exc
    if max_todo is None:
        raise ForeignKeyError(
            f"user {user_id} does not exist",
            user_id=user_id,
            operation="create_task_for_user",
        )
    return max_todo


async def create_task_for_user(
    db: Database,
    user_id: int,
    content: str,
    today: date | None = None,
    *,
    timeout: float | None = None,
) -> TaskRecord:
    """
    Create a task unless the user already reached `max_todo` for today.

    "Today" is read from the store's clock once the owner's row is locked,
    and the new row is stamped with that same reading, so the day that is
    counted is always the day the task lands on.

    Args:
        db: Connection manager.
        user_id: Owner; must exist (ForeignKeyError otherwise).
        content: Task text, non-empty.
        today: Day the caller expects the quota to apply to.  Optional; a
               value that disagrees with the store's date raises
               ValueError and nothing is written.
        timeout: Seconds before the whole operation is abandoned and
                 rolled back (DeadlineExceeded).

    Raises:
        QuotaError: the daily limit is already used up; nothing written.
        ForeignKeyError: no such user.
        ValueError: blank content, or `today` is not the store's date.
        StoreFailure: any other persistence problem.
    """
    if not content or not content.strip():
        raise ValueError("content is required")

    try:
        async with deadline(timeout, "create_task_for_user"):
            async with db.transaction(lock_writes=True) as session:
                max_todo = await lock_user_quota(session, user_id)
                stamp = await read_store_clock(session)
                store_today = stamp.astimezone(db.timezone).date()
                if today is not None and today != store_today:
                    raise ValueError(f"day {today} is not the store's current day {store_today}")
                used = await count_tasks_on_day(session, user_id, store_today, db.timezone)
                if used >= max_todo:
                    raise QuotaError(
                        f"user {user_id} reached the daily limit of {max_todo} tasks",
                        reason=QuotaViolation.DAILY_LIMIT_EXCEEDED,
                        limit=max_todo,
                        day=store_today,
                        operation="create_task_for_user",
                    )
                task = await insert_task(session, user_id, content, created_at=stamp)
    except sa_exc.SQLAlchemyError as exc:
        # Commit/rollback failures surface here.
        raise store_failure("create_task_for_user", exc) from exc
    return task
