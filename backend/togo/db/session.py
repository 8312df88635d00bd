"""
Async SQLAlchemy connection manager.

A `Database` owns one engine (and therefore one connection pool).  It is
constructed explicitly and handed to every repository/service call; there
is no module-level engine.

    db = await Database.connect(StoreConfig())
    await ensure_schema(db)
    async with db.transaction() as session:
        ...
    await db.shutdown()
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import event, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from togo.core.config import StoreConfig
from togo.core.errors import (
    DeadlineExceeded,
    StoreClosedError,
    StoreConnectionError,
    StoreFailure,
)
from togo.core.logging import get_logger

logger = get_logger(__name__)

# Execution option read by the SQLite "begin" hook.
SQLITE_BEGIN_OPTION = "togo_sqlite_begin"


def _install_sqlite_hooks(engine) -> None:
    """
    Take over transaction control from pysqlite.

    pysqlite's implicit BEGIN cannot be told to take the write lock up
    front, so BEGIN is emitted here instead; `BEGIN IMMEDIATE` is used
    when the session asked for it via SQLITE_BEGIN_OPTION.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql(conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "BEGIN"))


def store_failure(operation: str, exc: Exception) -> StoreFailure:
    """Wrap a driver/pool exception as a StoreFailure tagged with `operation`."""
    retryable = isinstance(exc, sa_exc.TimeoutError) or (
        isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated
    )
    return StoreFailure(
        str(exc),
        operation=operation,
        retryable=retryable,
        details={"error_type": type(exc).__name__},
    )


@asynccontextmanager
async def deadline(timeout: float | None, operation: str) -> AsyncIterator[None]:
    """Cancel the enclosed work after `timeout` seconds and raise DeadlineExceeded."""
    cm = asyncio.timeout(timeout)
    try:
        async with cm:
            yield
    except TimeoutError as exc:
        if not cm.expired():
            raise
        raise DeadlineExceeded(
            f"deadline of {timeout}s exceeded",
            operation=operation,
        ) from exc


class Database:
    """Owns the connection pool and hands out scoped sessions/transactions."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: float = 5.0,
        timezone: str = "UTC",
        echo: bool = False,
    ) -> None:
        self.url = make_url(url)
        self.timezone = ZoneInfo(timezone)
        self._closed = False

        engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
        if self.url.database not in (None, "", ":memory:"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
            )
        if self.dialect == "sqlite":
            engine_kwargs["connect_args"] = {"timeout": 30.0}
        elif self.dialect == "postgresql":
            engine_kwargs["connect_args"] = {"server_settings": {"timezone": timezone}}

        self.engine = create_async_engine(self.url, **engine_kwargs)
        if self.dialect == "sqlite":
            _install_sqlite_hooks(self.engine)

        self._sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    async def connect(cls, config: StoreConfig, *, echo: bool = False) -> Database:
        """Build a pool from `config` and verify the store answers."""
        db = cls(
            config.DATABASE_URL,
            pool_size=config.POOL_SIZE,
            max_overflow=config.MAX_OVERFLOW,
            pool_timeout=config.POOL_TIMEOUT,
            timezone=config.TIMEZONE,
            echo=echo,
        )
        await db.ping()
        logger.info(
            "Database connected",
            host=config.HOST,
            port=config.PORT,
            database=config.NAME,
        )
        return db

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    @property
    def closed(self) -> bool:
        return self._closed

    def today(self) -> date:
        """Current calendar day in the store timezone."""
        return datetime.now(self.timezone).date()

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise StoreClosedError("database handle is shut down", operation=operation)

    async def ping(self) -> None:
        """Run `SELECT 1`; raise StoreConnectionError if that fails."""
        self._check_open("ping")
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (sa_exc.SQLAlchemyError, OSError) as exc:
            await self.engine.dispose()
            raise StoreConnectionError(str(exc), operation="ping") from exc

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session holding at most one pooled connection.

        The connection goes back to the pool on every exit path; anything
        not committed is rolled back.
        """
        self._check_open("session")
        async with self._sessionmaker() as session:
            yield session

    @asynccontextmanager
    async def transaction(self, *, lock_writes: bool = False) -> AsyncIterator[AsyncSession]:
        """
        Yield a session inside one transaction.

        Commits when the block exits normally, rolls back on any exception
        (cancellation included).  With `lock_writes=True` the SQLite
        transaction starts with BEGIN IMMEDIATE so concurrent writers
        queue on the database lock; PostgreSQL callers lock rows
        explicitly instead.
        """
        self._check_open("transaction")
        async with self._sessionmaker() as session:
            async with session.begin():
                if lock_writes and self.dialect == "sqlite":
                    try:
                        await session.connection(
                            execution_options={SQLITE_BEGIN_OPTION: "BEGIN IMMEDIATE"}
                        )
                    except sa_exc.SQLAlchemyError as exc:
                        raise store_failure("transaction", exc) from exc
                yield session

    async def shutdown(self) -> None:
        """Close every pooled connection; later calls raise StoreClosedError."""
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        logger.info("Database shut down", dialect=self.dialect)
