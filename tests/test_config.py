"""
tests/test_config.py

Tests for environment-driven settings and database URL resolution.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from app.config import get_pipeline_settings, get_upload_settings
from db.config import has_database_url, normalize_postgres_url, resolve_database_url

_DATABASE_VARS = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL", "ENVIRONMENT")


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_upload_settings.cache_clear()
    get_pipeline_settings.cache_clear()
    yield
    get_upload_settings.cache_clear()
    get_pipeline_settings.cache_clear()


@pytest.fixture()
def no_database_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _DATABASE_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_upload_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPLOAD_MAX_BYTES", "2048")
    monkeypatch.setenv("UPLOAD_LOG_VALIDATION_ERRORS", "no")

    settings = get_upload_settings()

    assert settings.max_upload_bytes == 2048
    assert settings.log_validation_errors is False


def test_invalid_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_MAGIC_NUMBER_CEILING", "lots")
    monkeypatch.setenv("PERIOD_TWO_DIGIT_YEAR_WINDOW", "-4")

    settings = get_pipeline_settings()

    assert settings.magic_number_ceiling == 5.0
    assert settings.two_digit_year_window == 0


def test_postgres_urls_use_psycopg_driver() -> None:
    assert normalize_postgres_url("postgres://u:p@host/db") == "postgresql+psycopg://u:p@host/db"
    assert normalize_postgres_url("postgresql://host/db") == "postgresql+psycopg://host/db"
    assert normalize_postgres_url("postgresql+psycopg://host/db") == "postgresql+psycopg://host/db"


def test_database_url_priority(no_database_env: pytest.MonkeyPatch) -> None:
    no_database_env.setenv("LOCAL_DATABASE_URL", "postgresql://local/db")
    no_database_env.setenv("CLOUD_DATABASE_URL", "postgresql://cloud/db")
    assert resolve_database_url() == "postgresql+psycopg://local/db"

    no_database_env.setenv("ENVIRONMENT", "production")
    assert resolve_database_url() == "postgresql+psycopg://cloud/db"

    no_database_env.setenv("DATABASE_URL", "postgres://direct/db")
    assert resolve_database_url() == "postgresql+psycopg://direct/db"


def test_missing_database_url(no_database_env: pytest.MonkeyPatch) -> None:
    assert has_database_url() is False
    with pytest.raises(RuntimeError):
        resolve_database_url()
