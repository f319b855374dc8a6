# app/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if required config is missing.
"""

import math
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="PostgreSQL connection URL",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin endpoints (admin endpoints fail closed when unset)",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs (False for human-readable)",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level",
    )

    # Storage
    STORAGE_ROOT: str = Field(
        default=".",
        description="Directory that relative dataset storage paths resolve against",
    )
    DISK_RECONCILE_WORKERS: int = Field(
        default=4,
        ge=1,
        description="Parallel workers for removing dataset files from disk",
    )

    # Data retention defaults (seed the settings row on first read)
    DATA_RETENTION_ENABLED: bool = Field(
        default=False,
        description="Enable the dataset retention job",
    )
    DATA_RETENTION_DAYS: int = Field(
        default=0,
        description="Datasets uploaded more than this many days ago are eligible (0 = not configured)",
    )
    DATA_RETENTION_MODE: str = Field(
        default="delete",
        description="Retention mode: delete, archive",
    )
    DATA_RETENTION_DELETE_FILES: bool = Field(
        default=True,
        description="Remove uploaded files from disk after their dataset is deleted",
    )
    DATA_RETENTION_CHECK_HOURS: int = Field(
        default=24,
        description="Advisory interval for the external retention scheduler",
    )
    RETENTION_PRECREATE_ARCHIVE: bool = Field(
        default=False,
        description="Create archive tables at startup (for engines that auto-commit DDL)",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosted Postgres URLs use postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("DATA_RETENTION_DAYS", mode="before")
    @classmethod
    def parse_retention_days(cls, v) -> int:
        """Unparsable values fall back to 0 (not configured); fractions are floored."""
        try:
            days = float(v)
        except (TypeError, ValueError):
            return 0
        if not math.isfinite(days):
            return 0
        return math.floor(days)

    @field_validator("DATA_RETENTION_MODE", mode="before")
    @classmethod
    def parse_retention_mode(cls, v) -> str:
        """Anything other than 'archive' means delete."""
        return "archive" if str(v or "").strip().lower() == "archive" else "delete"

    @field_validator("DATA_RETENTION_CHECK_HOURS", mode="before")
    @classmethod
    def parse_check_hours(cls, v) -> int:
        try:
            hours = float(v)
        except (TypeError, ValueError):
            return 24
        if not math.isfinite(hours):
            return 24
        return max(1, math.floor(hours))

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
