# src/taskmaster/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.engine import TaskEngine
from ..tasks.task_store import TaskStore
from .ports import Clock, KeyValueStorage, Notifier


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    storage: KeyValueStorage
    clock: Clock
    notifier: Notifier
    store: TaskStore
    engine: TaskEngine

    # Last listing shown by the console: index -> id, so commands can take "#3" instead of a UUID.
    last_listing: dict[str, list[str]] = field(default_factory=dict)
