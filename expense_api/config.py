"""Environment-driven settings for the expense report service."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SQLITE_PATH = Path(__file__).with_name("expenses.db")


class Settings(BaseSettings):
    """Service configuration read from the process environment or ``.env``."""

    ENVIRONMENT: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment; production hides internal error detail",
    )
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000, ge=1, le=65535)

    # Database / pool
    DATABASE_URL: str = Field(
        default=f"sqlite:///{DEFAULT_SQLITE_PATH}",
        description="SQLAlchemy URL of the expense database",
    )
    DB_POOL_MIN: int = Field(default=2, ge=1)
    DB_POOL_MAX: int = Field(default=10, ge=1)
    DB_POOL_INCREMENT: int = Field(default=1, ge=1)
    DB_ACQUIRE_TIMEOUT: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a pooled connection before failing",
    )
    DB_SHUTDOWN_GRACE: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to wait for checked-out connections on shutdown",
    )
    DB_ECHO: bool = Field(default=False)

    # Rate limiting (per client address, applied to /api/*)
    RATE_LIMIT_MAX: int = Field(default=100, ge=1)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60, ge=1)

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated)",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=False)
    LOG_DIR: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "Settings":
        if self.DB_POOL_MAX < self.DB_POOL_MIN:
            raise ValueError("DB_POOL_MAX must be greater than or equal to DB_POOL_MIN")
        return self

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, parsed once."""
    return Settings()
