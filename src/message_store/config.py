"""Configuration management for Message Store.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the MESSAGE_STORE_ prefix (e.g., MESSAGE_STORE_DB_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="MESSAGE_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    db_path: Path = Field(
        default=Path("messages.sqlite3"),
        description="Path to the SQLite database holding direct messages",
    )
    busy_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a locked database before failing",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
