"""Configuration system for yieldbook.

Uses pydantic-settings to load configuration from environment variables
and .env files. Variables are prefixed with YIELDBOOK_ (e.g.,
YIELDBOOK_LOG_LEVEL), except the database URL and port, which also accept
the conventional DATABASE_URL and PORT.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="YIELDBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Storage: a database URL selects the Postgres store, none the in-memory one
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "YIELDBOOK_DATABASE_URL", "database_url"),
        description="Postgres connection string; unset runs without a database",
    )
    pool_min_size: int = Field(default=2, ge=1, description="Minimum pooled connections")
    pool_max_size: int = Field(default=10, ge=1, description="Maximum pooled connections")

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(
        default=5001,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "YIELDBOOK_PORT", "port"),
        description="Port to listen on",
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser",
    )

    log_level: str = Field(default="INFO", description="Root logger level")

    @field_validator("database_url")
    @classmethod
    def _blank_url_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def use_database(self) -> bool:
        return self.database_url is not None
