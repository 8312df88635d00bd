# tests/test_quota.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from togo.core.constants import QuotaViolation
from togo.core.errors import DeadlineExceeded, ForeignKeyError, QuotaError
from togo.db.models import Task
from togo.db.session import Database, deadline
from togo.repositories.tasks import TaskRecord, count_tasks, insert_task, list_tasks
from togo.services.quota import create_task_for_user


async def test_first_user_daily_scenario(db: Database, first_user) -> None:
    created = [
        await create_task_for_user(db, first_user.id, f"task {i}")
        for i in range(5)
    ]

    with pytest.raises(QuotaError) as excinfo:
        await create_task_for_user(db, first_user.id, "one too many")

    assert excinfo.value.reason == QuotaViolation.DAILY_LIMIT_EXCEEDED
    assert excinfo.value.limit == 5
    assert excinfo.value.day == db.today()

    listed = await list_tasks(db, first_user.id)
    assert [t.id for t in listed] == sorted(t.id for t in created)
    assert len(listed) == 5


@pytest.mark.parametrize(("requests", "limit"), [(10, 3), (4, 6), (8, 8)])
async def test_concurrent_creation_respects_quota(
    db: Database, make_user, requests: int, limit: int
) -> None:
    user = await make_user(f"racer{requests}x{limit}", max_todo=limit)

    results = await asyncio.gather(
        *(create_task_for_user(db, user.id, f"req {i}") for i in range(requests)),
        return_exceptions=True,
    )

    succeeded = [r for r in results if isinstance(r, TaskRecord)]
    rejected = [r for r in results if isinstance(r, QuotaError)]
    assert len(succeeded) == min(requests, limit)
    assert len(rejected) == requests - len(succeeded)
    assert await count_tasks(db, user.id) == min(requests, limit)


async def test_users_do_not_share_quota(db: Database, make_user) -> None:
    alice = await make_user("alice", max_todo=2)
    bob = await make_user("bob", max_todo=3)

    results = await asyncio.gather(
        *(create_task_for_user(db, alice.id, "a") for _ in range(5)),
        *(create_task_for_user(db, bob.id, "b") for _ in range(5)),
        return_exceptions=True,
    )

    by_owner: dict[int, int] = {}
    for r in results:
        if isinstance(r, TaskRecord):
            by_owner[r.user_id] = by_owner.get(r.user_id, 0) + 1
        else:
            assert isinstance(r, QuotaError)
    assert by_owner == {alice.id: 2, bob.id: 3}


async def test_zero_quota_rejects_everything(db: Database, make_user) -> None:
    user = await make_user("readonly", max_todo=0)

    with pytest.raises(QuotaError):
        await create_task_for_user(db, user.id, "nope")
    assert await count_tasks(db, user.id) == 0


async def test_previous_days_do_not_count(db: Database, make_user) -> None:
    user = await make_user("daily", max_todo=1)
    yesterday = datetime.now(timezone.utc) - timedelta(days=1)
    async with db.transaction() as session:
        session.add(Task(usr_id=user.id, content="old", created_at=yesterday))

    task = await create_task_for_user(db, user.id, "fresh")

    assert task.user_id == user.id
    with pytest.raises(QuotaError):
        await create_task_for_user(db, user.id, "second")


async def test_stale_day_cannot_bypass_the_limit(db: Database, make_user) -> None:
    user = await make_user("stale", max_todo=2)
    await create_task_for_user(db, user.id, "one")
    await create_task_for_user(db, user.id, "two")

    with pytest.raises(ValueError):
        await create_task_for_user(db, user.id, "over", today=db.today() - timedelta(days=1))

    assert await count_tasks(db, user.id) == 2
    with pytest.raises(QuotaError):
        await create_task_for_user(db, user.id, "over")


async def test_task_lands_on_the_counted_day(db: Database, make_user) -> None:
    user = await make_user("landing", max_todo=1)
    task = await create_task_for_user(db, user.id, "only")

    with pytest.raises(QuotaError) as excinfo:
        await create_task_for_user(db, user.id, "second")

    landed_on = task.created_at.astimezone(db.timezone).date()
    assert excinfo.value.day == landed_on
    assert await count_tasks(db, user.id, landed_on) == 1


async def test_unknown_user(db: Database) -> None:
    with pytest.raises(ForeignKeyError):
        await create_task_for_user(db, 987654, "ghost")


async def test_blank_content(db: Database, first_user) -> None:
    with pytest.raises(ValueError):
        await create_task_for_user(db, first_user.id, "")


async def test_expired_deadline_rolls_back(db: Database, make_user) -> None:
    user = await make_user("slowpoke")

    async def write_then_stall() -> None:
        async with db.transaction() as session:
            await insert_task(session, user.id, "never committed")
            await asyncio.sleep(10)

    with pytest.raises(DeadlineExceeded) as excinfo:
        async with deadline(0.2, "write_then_stall"):
            await write_then_stall()

    assert excinfo.value.retryable
    assert excinfo.value.operation == "write_then_stall"
    assert await count_tasks(db, user.id) == 0


async def test_cancellation_rolls_back(db: Database, make_user) -> None:
    user = await make_user("cancelled")
    inserted = asyncio.Event()

    async def write_then_wait() -> None:
        async with db.transaction() as session:
            await insert_task(session, user.id, "never committed")
            inserted.set()
            await asyncio.sleep(10)

    job = asyncio.create_task(write_then_wait())
    await inserted.wait()
    job.cancel()
    with pytest.raises(asyncio.CancelledError):
        await job

    assert await count_tasks(db, user.id) == 0
    assert await create_task_for_user(db, user.id, "after cancel")
