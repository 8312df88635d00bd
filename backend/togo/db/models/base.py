"""
SQLAlchemy declarative base and shared utilities for all models.

Convention:
    - Each table lives in its own file under `togo/db/models/`
    - Every model file imports `Base` from here
    - The `__init__.py` re-exports all models so `create_all` sees them
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql.expression import FunctionElement
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp that always round-trips as aware UTC.

    PostgreSQL stores `timestamptz` natively.  SQLite has no timezone
    support, so values are normalised to naive UTC on the way in (matching
    what `CURRENT_TIMESTAMP` produces) and re-tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime bound to a UTCDateTime column")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class store_now(FunctionElement):
    """
    The store's current time, as a SQL expression.

    `now()` on PostgreSQL.  On SQLite, CURRENT_TIMESTAMP drops the
    fractional part, which breaks lexical comparison against bound
    values, so the timestamp is rendered in the same
    `YYYY-MM-DD HH:MM:SS.ffffff` layout SQLAlchemy binds.
    """

    type = UTCDateTime()
    inherit_cache = True


@compiles(store_now)
def _store_now_default(element, compiler, **kw) -> str:
    return "now()"


@compiles(store_now, "sqlite")
def _store_now_sqlite(element, compiler, **kw) -> str:
    return "strftime('%Y-%m-%d %H:%M:%f000', 'now')"
