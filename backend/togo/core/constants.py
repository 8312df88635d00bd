"""Shared constants and enums used across the application."""

from datetime import datetime, timezone
from enum import StrEnum


class AuthFailure(StrEnum):
    """Why a credential check did not yield a user."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    STORE_FAILURE = "STORE_FAILURE"


class QuotaViolation(StrEnum):
    """Business-rule rejections raised by the task creator."""

    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"


DEFAULT_MAX_TODO = 5
USERNAME_MAX_LENGTH = 36

# ── Bootstrap data (seeded into an empty user directory) ──
BOOTSTRAP_USERNAME = "firstUser"
BOOTSTRAP_PASSWORD = "example"
BOOTSTRAP_TASK_CONTENT = "test 1"
BOOTSTRAP_TASK_CREATED_AT = datetime(2020, 6, 29, tzinfo=timezone.utc)
