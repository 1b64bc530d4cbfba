"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global library settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/larder.db"),
        description="SQLite database location.",
    )
    remote_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the shared remote document service.",
    )
    remote_token: Optional[str] = Field(
        default=None,
        description="Bearer token presented to the remote document service.",
    )
    remote_timeout: float = Field(
        default=10.0,
        description="Seconds before a remote document request times out.",
    )
    default_list_id: str = Field(
        default="default",
        description="Grocery list identifier used when a caller does not pick one.",
    )
    expiry_window_days: int = Field(
        default=7,
        description="Days ahead scanned when generating grocery entries from expiring items.",
    )
    sync_max_workers: int = Field(
        default=2,
        description="Maximum number of sync passes running concurrently.",
    )
    sync_poll_interval: float = Field(
        default=86400.0,
        description="Seconds between periodic sync passes for registered households.",
    )
    sync_backoff_base: float = Field(
        default=30.0,
        description="Initial delay in seconds before retrying a failed sync pass.",
    )
    sync_backoff_max: float = Field(
        default=3600.0,
        description="Upper bound in seconds for the retry delay.",
    )
    sync_max_attempts: int = Field(
        default=8,
        description="Retries scheduled for one request before waiting for the next trigger.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )

    model_config = ConfigDict(frozen=True)


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("LARDER_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (remote_url := _env("LARDER_REMOTE_BASE_URL")):
        payload["remote_base_url"] = remote_url
    if (remote_token := _env("LARDER_REMOTE_TOKEN")):
        payload["remote_token"] = remote_token
    if (remote_timeout := _env("LARDER_REMOTE_TIMEOUT")):
        try:
            payload["remote_timeout"] = float(remote_timeout)
        except ValueError:
            pass
    if (list_id := _env("LARDER_DEFAULT_LIST_ID")):
        payload["default_list_id"] = list_id
    if (window := _env("LARDER_EXPIRY_WINDOW_DAYS")):
        try:
            payload["expiry_window_days"] = int(window)
        except ValueError:
            pass
    if (max_workers := _env("LARDER_SYNC_MAX_WORKERS")):
        try:
            payload["sync_max_workers"] = max(1, int(max_workers))
        except ValueError:
            pass
    if (poll_interval := _env("LARDER_SYNC_POLL_INTERVAL")):
        try:
            payload["sync_poll_interval"] = float(poll_interval)
        except ValueError:
            pass
    if (backoff_base := _env("LARDER_SYNC_BACKOFF_BASE")):
        try:
            payload["sync_backoff_base"] = float(backoff_base)
        except ValueError:
            pass
    if (backoff_max := _env("LARDER_SYNC_BACKOFF_MAX")):
        try:
            payload["sync_backoff_max"] = float(backoff_max)
        except ValueError:
            pass
    if (max_attempts := _env("LARDER_SYNC_MAX_ATTEMPTS")):
        try:
            payload["sync_max_attempts"] = int(max_attempts)
        except ValueError:
            pass
    if (log_level := _env("LARDER_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("LARDER_LOG_FORMAT")):
        payload["log_format"] = log_format
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
