"""
Settings - Client configuration using Pydantic Settings.

Loads from FACETSCOPE_* environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings."""

    # Backend
    backend_url: str = "http://localhost:7700"
    application_id: str | None = None
    api_key: str | None = None
    default_index: str | None = None
    request_timeout: float = Field(default=10.0, gt=0)

    # Search defaults
    hits_per_page: int = Field(default=20, ge=1)
    highlight_pre_tag: str = "<em>"
    highlight_post_tag: str = "</em>"
    max_facet_hits: int = Field(default=10, ge=1)

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FACETSCOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
