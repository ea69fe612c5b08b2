"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class UploadSettings:
    """
    Runtime settings for spreadsheet and CSV uploads.
    """

    max_upload_bytes: int = 10 * 1024 * 1024
    max_validation_errors: int = 500
    log_validation_errors: bool = True
    batch_size: int = 1000


@dataclass(frozen=True)
class PipelineSettings:
    """
    Tunables for period parsing, id derivation and metric conventions.
    """

    two_digit_year_window: int = 20
    magic_number_ceiling: float = 5.0
    customer_id_max_length: int = 50
    customer_id_collision_cap: int = 1000


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload settings from environment variables.
    """

    return UploadSettings(
        max_upload_bytes=max(1, _get_int_env("UPLOAD_MAX_BYTES", 10 * 1024 * 1024)),
        max_validation_errors=max(1, _get_int_env("UPLOAD_MAX_VALIDATION_ERRORS", 500)),
        log_validation_errors=_get_bool_env("UPLOAD_LOG_VALIDATION_ERRORS", True),
        batch_size=max(1, _get_int_env("UPLOAD_BATCH_SIZE", 1000)),
    )


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """
    Return cached pipeline settings from environment variables.
    """

    return PipelineSettings(
        two_digit_year_window=max(0, _get_int_env("PERIOD_TWO_DIGIT_YEAR_WINDOW", 20)),
        magic_number_ceiling=max(0.0, _get_float_env("METRICS_MAGIC_NUMBER_CEILING", 5.0)),
        customer_id_max_length=max(8, _get_int_env("CUSTOMER_ID_MAX_LENGTH", 50)),
        customer_id_collision_cap=max(1, _get_int_env("CUSTOMER_ID_COLLISION_CAP", 1000)),
    )
