# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmaster.cli.bootstrap import create_initial_state
from taskmaster.core.state import AppState
from taskmaster.storage.kv_store import MemoryKeyValueStore
from taskmaster.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNotifier

# Wednesday; the current week runs Sun 2024-05-12 .. Sat 2024-05-18.
NOW = datetime(2024, 5, 15, 10, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the engine.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="TaskMaster-test",
        data_dir=tmp_path,
        db_path=tmp_path / "taskmaster.sqlite3",
        reminder_interval_seconds=0.01,
        rollover_interval_seconds=0.01,
        history_retention_days=7,
        notifications_enabled=True,
        desktop_notifications=False,
        suppress_repeats=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def storage() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(storage: MemoryKeyValueStore, clock: FakeClock, notifier: FakeNotifier) -> TaskStore:
    return TaskStore(storage, clock=clock, notifier=notifier)


@pytest.fixture()
def state(settings: SimpleNamespace, storage, clock, notifier) -> AppState:
    """AppState wired with deterministic fakes (in-memory storage, fixed clock)."""
    return create_initial_state(settings=settings, storage=storage, clock=clock, notifier=notifier)
