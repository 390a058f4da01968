# src/taskmaster/tasks/engine.py

from __future__ import annotations

"""
TaskEngine: owner of the background timers.

Two loops run on the caller's event loop:
- rollover loop: checks for a day change every `rollover_interval_seconds`
- reminder loop: rollover check + reminder evaluation every `reminder_interval_seconds`

Both only read the store's current snapshot and publish changes through store
methods, so they interleave safely with console mutations on the same loop.
`stop()` cancels and awaits both tasks; nothing fires after it returns.
"""

import asyncio
import contextlib
import logging

from ..core.ports import Clock, Notifier
from .rollover import DEFAULT_RETENTION_DAYS, RolloverManager
from .reminders import DEFAULT_INTERVAL_SECONDS, ReminderScheduler, run_reminder_scheduler
from .task_store import TaskStore

logger = logging.getLogger(__name__)


async def run_rollover_loop(rollover: RolloverManager, *, interval_seconds: float = 60.0) -> None:
    """Poll for a day change. To stop, cancel the coroutine/task."""
    sleep_s = max(0.01, float(interval_seconds))
    while True:
        await asyncio.sleep(sleep_s)
        try:
            rollover.check()
        except Exception:
            logger.exception("Rollover check failed")


class TaskEngine:
    def __init__(
        self,
        store: TaskStore,
        clock: Clock,
        notifier: Notifier,
        *,
        reminder_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        rollover_interval_seconds: float = 60.0,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        suppress_repeats: bool = True,
    ) -> None:
        self.store = store
        self.clock = clock
        self.rollover = RolloverManager(store, clock, retention_days=retention_days)
        self.scheduler = ReminderScheduler(
            store,
            notifier,
            clock,
            rollover=self.rollover,
            suppress_repeats=suppress_repeats,
        )
        self._reminder_interval = reminder_interval_seconds
        self._rollover_interval = rollover_interval_seconds
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        if self.running:
            return

        # Startup pass: retention first (independent of rollover), then the day check.
        self.rollover.prune()
        self.rollover.check()

        self._tasks = [
            asyncio.create_task(
                run_rollover_loop(self.rollover, interval_seconds=self._rollover_interval),
                name="taskmaster-rollover",
            ),
            asyncio.create_task(
                run_reminder_scheduler(self.scheduler, interval_seconds=self._reminder_interval),
                name="taskmaster-reminders",
            ),
        ]
        logger.info(
            "TaskEngine started (reminders every %ss, rollover every %ss)",
            self._reminder_interval,
            self._rollover_interval,
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for t in tasks:
            t.cancel()
        for t in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await t
        if tasks:
            logger.info("TaskEngine stopped")

    async def __aenter__(self) -> TaskEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
