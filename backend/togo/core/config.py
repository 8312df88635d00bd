"""
Pydantic Settings — configuration loaded from environment variables.

`StoreConfig` is passed explicitly to `Database.connect()`; nothing in the
data-access layer reads settings on its own.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Connection parameters for the relational store (env prefix TOGO_DB_)."""

    # ── Database (individual vars, all required) ──
    HOST: str
    PORT: int = Field(..., gt=0, lt=65536)
    USERNAME: str
    PASSWORD: str
    NAME: str

    # ── Pool / session tuning ─────────────────
    POOL_SIZE: int = Field(10, ge=1)
    MAX_OVERFLOW: int = Field(5, ge=0)
    POOL_TIMEOUT: float = Field(5.0, gt=0)
    TIMEZONE: str = "UTC"

    model_config = SettingsConfigDict(
        env_prefix="TOGO_DB_",
        env_file=["../.env", ".env"],
        extra="ignore",
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.USERNAME}:{self.PASSWORD}@{self.HOST}:{self.PORT}/{self.NAME}"


class Settings(BaseSettings):
    # ── Auth / JWT ────────────────────────────
    JWT_SECRET_KEY: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    model_config = SettingsConfigDict(env_file=["../.env", ".env"], extra="ignore")


settings = Settings()
