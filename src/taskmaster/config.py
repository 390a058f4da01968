# src/taskmaster/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKMASTER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Timers ----
    reminder_interval_seconds: float
    rollover_interval_seconds: float
    history_retention_days: int

    # ---- Notifications ----
    notifications_enabled: bool
    desktop_notifications: bool
    suppress_repeats: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "TaskMaster") or "TaskMaster"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmaster"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskmaster.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            reminder_interval_seconds=_env_float(_k("REMINDER_INTERVAL_SECONDS"), 900.0),
            rollover_interval_seconds=_env_float(_k("ROLLOVER_INTERVAL_SECONDS"), 60.0),
            history_retention_days=_env_int(_k("HISTORY_RETENTION_DAYS"), 7),
            notifications_enabled=_env_bool(_k("NOTIFICATIONS_ENABLED"), True),
            desktop_notifications=_env_bool(_k("DESKTOP_NOTIFICATIONS"), False),
            suppress_repeats=_env_bool(_k("SUPPRESS_REPEATS"), True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
