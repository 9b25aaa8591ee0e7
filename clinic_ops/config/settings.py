"""Application settings loaded from environment variables."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SQL_BACKEND_ALIASES = {"sql", "sqlite", "database", "sqlalchemy"}


class Settings(BaseSettings):
    """Process-level configuration, read once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="clinic-ops", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    # Storage
    data_backend: str = Field(
        default="memory",
        alias="DATA_BACKEND",
        description="memory or sql",
    )
    database_url: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="SQLAlchemy async URL, e.g. sqlite+aiosqlite:///./clinic_ops.db",
    )

    # PHI guardrails
    phi_encryption_key: Optional[str] = Field(
        default=None,
        alias="PHI_ENCRYPTION_KEY",
        description="Key material for free-text encryption; unset disables the cipher",
    )
    require_purpose_on_sensitive_reads: bool = Field(
        default=True,
        alias="REQUIRE_PURPOSE_ON_SENSITIVE_READS",
    )

    audit_list_default_limit: int = Field(default=100, alias="AUDIT_LIST_DEFAULT_LIMIT")

    @field_validator("data_backend", mode="before")
    @classmethod
    def normalize_data_backend(cls, value: Optional[str]) -> str:
        normalized = (value or "").strip().lower()
        if normalized in _SQL_BACKEND_ALIASES:
            return "sql"
        return "memory"

    @field_validator("phi_encryption_key", "database_url", mode="before")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the process settings, loading them on first use."""
    return Settings()
