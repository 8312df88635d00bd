"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from togo.api.v1 import auth, tasks
from togo.core.config import StoreConfig, settings
from togo.core.logging import get_logger, setup_logging
from togo.db.bootstrap import ensure_schema
from togo.db.session import Database


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging(
        "DEBUG" if settings.APP_ENV == "development" else "INFO",
        json_logs=settings.APP_ENV != "development",
    )
    logger = get_logger("startup")
    logger.info("Application starting", env=settings.APP_ENV)

    owns_db = app.state.db is None
    if owns_db:
        app.state.db = await Database.connect(StoreConfig())
    await ensure_schema(app.state.db)
    yield
    logger.info("Application shutting down")
    if owns_db:
        await app.state.db.shutdown()


def create_app(db: Database | None = None) -> FastAPI:
    """
    Build the application.

    Pass `db` to serve from an existing Database handle (tests, tooling);
    otherwise one is built from `StoreConfig` at startup and closed at
    shutdown.
    """
    app = FastAPI(
        title="Togo API",
        description="Todo tasks with a per-user daily quota",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.db = db

    API_PREFIX = "/api/v1"
    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(tasks.router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Public health-check endpoint."""
        return {"status": "ok", "env": settings.APP_ENV}

    return app
