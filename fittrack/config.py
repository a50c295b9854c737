"""
Configuration and settings for the notification service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import BROWSER_QUEUE_MAX_ITEMS, DEFAULT_TIMEZONE


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Browser notification relay (Redis)
    redis_url: Optional[str] = Field(default=None)
    browser_queue_key_prefix: str = Field(default="fittrack:browser")
    browser_queue_max_items: int = Field(default=BROWSER_QUEUE_MAX_ITEMS, ge=1)

    # Shared secrets for the scheduler trigger and admin endpoints
    cron_secret: Optional[str] = Field(default=None)
    admin_secret: Optional[str] = Field(default=None)

    default_timezone: str = Field(default=DEFAULT_TIMEZONE)

    # Firebase Admin service account: a file path or the JSON document itself
    firebase_credentials_path: Optional[str] = Field(default=None)
    firebase_credentials_json: Optional[str] = Field(default=None)

    @property
    def effective_admin_secret(self) -> Optional[str]:
        return self.admin_secret or self.cron_secret

    @property
    def push_configured(self) -> bool:
        return bool(self.firebase_credentials_path or self.firebase_credentials_json)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
