"""
Runtime settings, read once from the environment.

    DATABASE_URL               SQLAlchemy URL (default: local SQLite file)
    LOG_LEVEL                  DEBUG / INFO / ... (default depends on APP_ENV)
    APP_ENV                    development | production | testing
    STORE_MAX_RETRIES          storage retry attempts (default 3)
    STORE_RETRY_DELAY_SECONDS  base linear backoff (default 1.0)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from onboarding.storage import RetryPolicy

_SQLITE_DEV = "sqlite:///./onboarding.sqlite3"


@dataclass(frozen=True)
class Settings:
    database_url: str = _SQLITE_DEV
    app_env: str = "development"
    log_level: str = "DEBUG"
    store_max_retries: int = 3
    store_retry_delay_seconds: float = 1.0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.store_max_retries, delay_seconds=self.store_retry_delay_seconds)


def load_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "development").lower()

    raw_db_url = os.getenv("DATABASE_URL", "")
    # Heroku-style URLs
    database_url = raw_db_url.replace("postgres://", "postgresql://", 1) if raw_db_url else _SQLITE_DEV

    return Settings(
        database_url=database_url,
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", "INFO" if app_env == "production" else "DEBUG").upper(),
        store_max_retries=int(os.getenv("STORE_MAX_RETRIES", "3")),
        store_retry_delay_seconds=float(os.getenv("STORE_RETRY_DELAY_SECONDS", "1.0")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
