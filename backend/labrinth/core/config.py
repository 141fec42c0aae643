"""
Labrinth Forum Configuration.

Environment-based configuration using Pydantic Settings.
All values can be overridden via environment variables or a .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Labrinth Forum"
    app_version: str = "1.0.0"
    debug: bool = False

    # API
    api_v1_prefix: str = "/api/v1"

    # Flat-file storage
    data_dir: Path = Path("data")

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    # Forum Module
    default_moderation_reason: str = "Violation of forum rules"
    password_min_length: int = 6
    reconcile_counters_on_startup: bool = True

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: Any) -> Any:
        """Expand ~ in the data directory path."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
