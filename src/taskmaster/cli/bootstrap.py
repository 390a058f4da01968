# src/taskmaster/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (storage, clock, notifier, store, engine) into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock, KeyValueStorage, Notifier
from ..core.state import AppState
from ..notify.notifiers import DesktopNotifier, FanoutNotifier, LogNotifier
from ..storage.kv_store import SqliteKeyValueStore
from ..tasks.engine import TaskEngine
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_notifier(settings) -> Notifier:
    enabled = bool(getattr(settings, "notifications_enabled", True))
    log_notifier = LogNotifier(permission_granted=enabled)
    if not getattr(settings, "desktop_notifications", False):
        return log_notifier
    desktop = DesktopNotifier(
        app_name=str(getattr(settings, "app_name", "TaskMaster")),
        permission_granted=enabled,
    )
    return FanoutNotifier(log_notifier, desktop)


def create_initial_state(
    *,
    settings=None,
    storage: KeyValueStorage | None = None,
    clock: Clock | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and collaborators injectable makes the app easier to test
    and avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if storage is None:
        _ensure_local_dirs(settings)
        storage = SqliteKeyValueStore(settings.db_path)

    clock = clock or SystemClock()
    notifier = notifier or build_notifier(settings)
    store = TaskStore(storage, clock=clock, notifier=notifier)

    engine = TaskEngine(
        store,
        clock,
        notifier,
        reminder_interval_seconds=float(getattr(settings, "reminder_interval_seconds", 900.0)),
        rollover_interval_seconds=float(getattr(settings, "rollover_interval_seconds", 60.0)),
        retention_days=int(getattr(settings, "history_retention_days", 7)),
        suppress_repeats=bool(getattr(settings, "suppress_repeats", True)),
    )

    return AppState(
        settings=settings,
        storage=storage,
        clock=clock,
        notifier=notifier,
        store=store,
        engine=engine,
    )
