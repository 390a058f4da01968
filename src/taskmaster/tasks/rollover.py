# src/taskmaster/tasks/rollover.py

"""
Day rollover for daily tasks.

On every check the stored `last_reset_date` is compared with today's local date.
When they differ the previous day is archived into task history, daily tasks are
reset, `last_reset_date` advances to today and old history is pruned.

A gap of several days (app closed over a weekend) produces one snapshot, for the
last known date, and one reset. Missed days are not backfilled.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from enum import StrEnum

from ..core.clock import format_date, parse_date
from ..core.ports import Clock
from .task_models import TaskHistory
from .task_store import TaskStore, counts

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class RolloverState(StrEnum):
    CURRENT_DAY = "current_day"
    TRANSITIONING = "transitioning"


class RolloverManager:
    def __init__(self, store: TaskStore, clock: Clock, *, retention_days: int = DEFAULT_RETENTION_DAYS) -> None:
        self._store = store
        self._clock = clock
        self._retention_days = max(0, int(retention_days))
        self.state = RolloverState.CURRENT_DAY

    def _today(self) -> date:
        return self._clock.now().date()

    def check(self) -> bool:
        """Run the rollover if the calendar day changed. Returns True if it did."""
        today = self._today()
        last = self._store.last_reset_date
        if last == format_date(today):
            return False

        self.state = RolloverState.TRANSITIONING
        try:
            self._snapshot(last)
            self._store.replace_daily_tasks(
                replace(t, completed=False, date=today) for t in self._store.daily_tasks
            )
            self._store.set_last_reset_date(today)
            self.prune()
        finally:
            self.state = RolloverState.CURRENT_DAY

        logger.info("Rollover %s -> %s", last, format_date(today))
        return True

    def _snapshot(self, day: str) -> None:
        daily = self._store.daily_tasks
        if not daily:
            return
        completed, total = counts(daily)
        self._store.upsert_history(TaskHistory(date=day, completed=completed, total=total))
        logger.debug("History snapshot date=%s completed=%d total=%d", day, completed, total)

    def prune(self) -> int:
        """Drop history entries older than today - retention_days. Returns how many were removed."""
        cutoff = self._today() - timedelta(days=self._retention_days)
        history = self._store.task_history
        kept = []
        for h in history:
            day = parse_date(h.date)
            if day is not None and day >= cutoff:
                kept.append(h)

        removed = len(history) - len(kept)
        if removed:
            self._store.replace_task_history(kept)
            logger.info("Pruned %d history entries older than %s", removed, format_date(cutoff))
        return removed
