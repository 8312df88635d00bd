"""API request/response schemas."""

from togo.api.schemas.auth import LoginRequest, TokenResponse
from togo.api.schemas.tasks import TaskCreateRequest, TaskListResponse, TaskResponse

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "TaskCreateRequest",
    "TaskListResponse",
    "TaskResponse",
]
