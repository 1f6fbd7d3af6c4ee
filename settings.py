from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Document location (None: the default under the project data dir)
    published_nodes_file: Path | None

    # Provider policy
    persist_to_disk: bool
    create_on_write: bool
    seed_empty_document: bool
    write_timeout: float | None

    # Watch
    watch_use_polling: bool
    watch_poll_interval: float
    watch_check_interval: float
    watch_retry_attempts: int
    watch_retry_backoff: float
    watch_max_backoff: float


def get_settings(env_file: str | None = "local.env") -> Settings:
    if env_file:
        load_dotenv(env_file)

    raw_path = os.getenv("PUBLISHED_NODES_FILE", "").strip()
    published_nodes_file = Path(raw_path).expanduser() if raw_path else None

    # A publisher without a durable config is only useful in tests; default on.
    persist_to_disk = _env_bool("PERSIST_TO_DISK", True)
    create_on_write = _env_bool("PUBLISHED_NODES_CREATE_ON_WRITE", True)
    seed_empty_document = _env_bool("PUBLISHED_NODES_SEED_EMPTY", False)
    write_timeout = _env_optional_float("PUBLISHED_NODES_WRITE_TIMEOUT")

    watch_use_polling = _env_bool("WATCH_USE_POLLING", False)
    watch_poll_interval = _env_float("WATCH_POLL_INTERVAL", 1.0)
    watch_check_interval = _env_float("WATCH_CHECK_INTERVAL", 1.0)
    watch_retry_attempts = _env_int("WATCH_RETRY_ATTEMPTS", 10)
    watch_retry_backoff = _env_float("WATCH_RETRY_BACKOFF", 0.5)
    watch_max_backoff = _env_float("WATCH_MAX_BACKOFF", 30.0)

    return Settings(
        published_nodes_file=published_nodes_file,
        persist_to_disk=persist_to_disk,
        create_on_write=create_on_write,
        seed_empty_document=seed_empty_document,
        write_timeout=write_timeout,
        watch_use_polling=watch_use_polling,
        watch_poll_interval=watch_poll_interval,
        watch_check_interval=watch_check_interval,
        watch_retry_attempts=watch_retry_attempts,
        watch_retry_backoff=watch_retry_backoff,
        watch_max_backoff=watch_max_backoff,
    )
