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


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for bulk import jobs.
    """

    worker_count: int = 4
    progress_flush_interval: int = 50
    max_rows: int = 50_000
    log_row_errors: bool = True


@dataclass(frozen=True)
class HistorySettings:
    """
    Audit trail retention settings.
    """

    retention_days: int = 7
    cleanup_enabled: bool = True
    cleanup_hour_utc: int = 3


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached bulk import settings from environment variables.
    """

    return ImportSettings(
        worker_count=max(1, _get_int_env("IMPORT_WORKER_COUNT", 4)),
        progress_flush_interval=max(1, _get_int_env("IMPORT_PROGRESS_FLUSH_INTERVAL", 50)),
        max_rows=max(1, _get_int_env("IMPORT_MAX_ROWS", 50_000)),
        log_row_errors=_get_bool_env("IMPORT_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_history_settings() -> HistorySettings:
    """
    Return cached audit retention settings from environment variables.
    """

    return HistorySettings(
        retention_days=max(1, _get_int_env("HISTORY_RETENTION_DAYS", 7)),
        cleanup_enabled=_get_bool_env("HISTORY_CLEANUP_ENABLED", True),
        cleanup_hour_utc=min(23, max(0, _get_int_env("HISTORY_CLEANUP_HOUR_UTC", 3))),
    )


def get_log_level() -> str:
    return _get_str_env("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class ServerSettings:
    """
    Bind address for the uvicorn entry point.
    """

    host: str = "0.0.0.0"
    port: int = 8000


def get_server_settings() -> ServerSettings:
    return ServerSettings(
        host=_get_str_env("API_HOST", "0.0.0.0"),
        port=_get_int_env("API_PORT", 8000),
    )
