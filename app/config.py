"""
Scotch — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Scotch relationship backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Database – Cloud SQL via Unix socket or plain asyncpg URL
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_USER: str = "scotch_api"
    DB_PASSWORD: str = ""
    DB_NAME: str = "scotch"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5

    CLOUD_SQL_INSTANCE_CONNECTION: str = ""
    CLOUD_SQL_USE_UNIX_SOCKET: bool = False

    # ------------------------------------------------------------------ #
    # Authentication hand-off
    # ------------------------------------------------------------------ #
    # The session gateway in front of the API authenticates the cookie and
    # forwards the resolved user id in this header.
    CURRENT_USER_HEADER: str = "X-User-Id"

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator("REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Request timeout must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalise_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {v!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from app.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]
