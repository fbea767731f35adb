"""Configuration management for the shortlink service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortlink.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (or a ``.env`` file) override the defaults.
- Defaults run the service locally against a SQLite file with no Redis and
  no remote log collector.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    # Record store: "sqlalchemy" or "memory"
    STORE_BACKEND: str = "sqlalchemy"
    DATABASE_URL: str = "sqlite+aiosqlite:///./shortlink.db"
    DATABASE_ECHO: bool = False

    # Redirect lookup cache (Redis)
    CACHE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SECONDS: int = 3600

    # Shortcode generation
    SHORT_CODE_LENGTH: int = 6
    SHORT_CODE_FALLBACK_LENGTH: int = 10
    SHORT_CODE_MAX_ATTEMPTS: int = 5

    # Creation policy
    DEFAULT_VALIDITY_MINUTES: int = 30
    MAX_VALIDITY_MINUTES: int = 60 * 24 * 365 * 10
    CUSTOM_CODE_MIN_LENGTH: int = 4
    CUSTOM_CODE_MAX_LENGTH: int = 12

    # Remote log collector; an empty URL disables shipping
    REMOTE_LOG_URL: str = ""
    REMOTE_LOG_TOKEN: str = ""
    REMOTE_LOG_TIMEOUT_SECONDS: float = 2.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
