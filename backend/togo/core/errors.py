"""
Domain-specific exception hierarchy for the data-access layer.

All exceptions inherit from TogoError so callers can catch broadly or
narrowly as needed.  Each exception carries the name of the operation
that raised it plus structured details for logging/debugging.  Driver
exceptions are always chained (`raise ... from exc`).
"""

from __future__ import annotations

from datetime import date

from togo.core.constants import AuthFailure, QuotaViolation


class TogoError(Exception):
    """Base exception for all togo errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.operation = operation
        self.details = details or {}
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)


class StoreConnectionError(TogoError):
    """The store is unreachable or rejected the credentials."""
    pass


class StoreClosedError(TogoError):
    """The Database handle has been shut down."""
    pass


class SchemaError(TogoError):
    """An existing table conflicts with the expected layout."""
    pass


class StoreFailure(TogoError):
    """Unexpected persistence error."""

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        **kwargs,
    ) -> None:
        self.retryable = retryable
        super().__init__(message, **kwargs)


class DeadlineExceeded(StoreFailure):
    """The caller-supplied deadline expired; work was rolled back."""

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class ForeignKeyError(TogoError):
    """A task referenced a user that does not exist."""

    def __init__(self, message: str, *, user_id: int | None = None, **kwargs) -> None:
        self.user_id = user_id
        super().__init__(message, **kwargs)


class AuthError(TogoError):
    """Credential validation failed; see `reason`."""

    def __init__(self, message: str, *, reason: AuthFailure, **kwargs) -> None:
        self.reason = reason
        super().__init__(message, **kwargs)


class QuotaError(TogoError):
    """The user already reached their daily task limit."""

    def __init__(
        self,
        message: str,
        *,
        reason: QuotaViolation = QuotaViolation.DAILY_LIMIT_EXCEEDED,
        limit: int | None = None,
        day: date | None = None,
        **kwargs,
    ) -> None:
        self.reason = reason
        self.limit = limit
        self.day = day
        super().__init__(message, **kwargs)
