"""
db/config.py

Environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = value.strip().strip('"').strip("'")


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite postgres URLs to SQLAlchemy's psycopg (v3) driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def _configured_database_url() -> str | None:
    load_env_files()

    direct_url = os.getenv("DATABASE_URL")
    if direct_url:
        return direct_url

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL")
    if environment in _CLOUD_ENVIRONMENTS and cloud_url:
        return cloud_url

    return os.getenv("LOCAL_DATABASE_URL") or None


def has_database_url() -> bool:
    """
    Return True when any supported database URL variable is set.
    """

    return _configured_database_url() is not None


def resolve_database_url() -> str:
    """
    Resolve the database URL using environment variables and optional .env files.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL
    """

    url = _configured_database_url()
    if url is None:
        raise RuntimeError(
            "No database URL configured. Set DATABASE_URL, or configure "
            "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
        )
    return normalize_postgres_url(url)


@dataclass(frozen=True)
class EngineSettings:
    """
    Connection pool settings for the revenue store engine.
    """

    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800
    statement_timeout_ms: int = 30_000


@lru_cache(maxsize=1)
def get_engine_settings() -> EngineSettings:
    load_env_files()
    defaults = EngineSettings()
    return EngineSettings(
        echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
        pool_size=_int_env("DB_POOL_SIZE", defaults.pool_size),
        max_overflow=_int_env("DB_MAX_OVERFLOW", defaults.max_overflow),
        pool_recycle_seconds=_int_env("DB_POOL_RECYCLE", defaults.pool_recycle_seconds),
        statement_timeout_ms=_int_env("DB_STATEMENT_TIMEOUT_MS", defaults.statement_timeout_ms),
    )


def _int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default
