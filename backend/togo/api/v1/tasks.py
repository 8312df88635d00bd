"""Task listing and quota-limited task creation."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from togo.api.deps import get_current_user_id, get_database
from togo.api.schemas.tasks import TaskCreateRequest, TaskListResponse, TaskResponse
from togo.core.errors import ForeignKeyError, QuotaError, StoreClosedError, StoreFailure
from togo.core.logging import get_logger
from togo.db.session import Database
from togo.repositories import tasks as task_repository
from togo.services.quota import create_task_for_user

logger = get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])

REQUEST_TIMEOUT_SECONDS = 10.0


def _unavailable(exc: Exception) -> HTTPException:
    logger.error("Store operation failed", error=str(exc), error_type=type(exc).__name__)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service temporarily unavailable",
    )


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    created_date: date | None = Query(None, description="Day to list (YYYY-MM-DD); defaults to today"),
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_database),
) -> TaskListResponse:
    """List the current user's tasks created on one day."""
    try:
        tasks = await task_repository.list_tasks(
            db, user_id, created_date, timeout=REQUEST_TIMEOUT_SECONDS
        )
    except (StoreFailure, StoreClosedError) as exc:
        raise _unavailable(exc) from exc
    return TaskListResponse(data=[TaskResponse.model_validate(t) for t in tasks])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: Database = Depends(get_database),
) -> TaskResponse:
    """Create a task for the current user, within their daily quota."""
    try:
        task = await create_task_for_user(
            db, user_id, payload.content, timeout=REQUEST_TIMEOUT_SECONDS
        )
    except QuotaError as exc:
        logger.info("Daily task limit reached", user_id=user_id, limit=exc.limit)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily limit of {exc.limit} tasks reached",
        ) from exc
    except ForeignKeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive user",
        ) from exc
    except (StoreFailure, StoreClosedError) as exc:
        raise _unavailable(exc) from exc
    return TaskResponse.model_validate(task)
