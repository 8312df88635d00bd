"""Task request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskCreateRequest(BaseModel):
    """Request payload for creating a task."""

    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class TaskResponse(BaseModel):
    """A stored task."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    content: str
    created_at: datetime


class TaskListResponse(BaseModel):
    """Tasks of one user on one day, ordered by id."""

    data: list[TaskResponse]
