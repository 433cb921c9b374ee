"""Environment-driven settings for the short-URL server and garbage collector.

Only the two process entry points read settings. They turn them into
constructed handles (an engine, a session factory, a listen address) and hand
those down; the repository and the service never import this module.

Where Each Setting Goes
=======================
::
    .env / environment
           │
           ▼
    ┌──────────────┐     DATABASE_URL, DB_POOL_SIZE,      ┌────────────────┐
    │ get_settings │──── DB_MAX_OVERFLOW, APP_ENV ───────▶│ database.engine │
    └──────┬───────┘                                      └────────────────┘
           │ HOST, PORT, LOG_LEVEL, APP_NAME
           ├──────────────────────────────────▶ main.run() / lifespan
           │ GC_INTERVAL_SECONDS, LOG_LEVEL
           └──────────────────────────────────▶ gc.main()

Examples
========
::
    # Postgres in production, listening on all interfaces
    DATABASE_URL=postgresql+asyncpg://shorturl:secret@db:5432/shorturl HOST=0.0.0.0 PORT=8080 shorturl-server

    # Purge expired rows every five minutes instead of once
    GC_INTERVAL_SECONDS=300 shorturl-gc

Notes
=====
- Names are case-sensitive and match the field names below exactly.
- ``APP_ENV=development`` turns on SQL echo for the engine.
- ``get_settings()`` is cached; tests that need other values build
  ``Settings(...)`` directly or override the session factory dependency.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shorturl"
    APP_ENV: str = "development"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shorturl:shorturl@db:5432/shorturl"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # HTTP listener
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # Expired row garbage collection; 0 means run once and exit
    GC_INTERVAL_SECONDS: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
