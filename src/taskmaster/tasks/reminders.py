# src/taskmaster/tasks/reminders.py

from __future__ import annotations

"""
Reminder scheduler.

A small polling loop that:
- runs the day-rollover check,
- evaluates every reminder against the clock,
- sends a notification when a reminder sits exactly on a lead-time threshold
  (7 days, 3 days, 18 hours, due now).

Thresholds are exact matches on truncated whole days/hours, not ranges. A reminder
can skip a threshold if the poll interval is coarser than the window in which the
match holds (the 18h and 0h windows are one hour wide, the day windows 24 hours).

Repeat suppression: each (reminder, threshold) pair is recorded once delivered and
not sent again, across restarts. Without it the 15-minute poll would fire the same
"due in 3 days" notification ~96 times inside the 24h window.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from ..core.clock import EPOCH, combine_or_epoch, format_date
from ..core.ports import Clock, Notifier
from ..notify.notifiers import safe_deliver
from .rollover import RolloverManager
from .task_models import Reminder
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 15 * 60


class Threshold(StrEnum):
    ONE_WEEK = "7d"
    THREE_DAYS = "3d"
    EIGHTEEN_HOURS = "18h"
    DUE_NOW = "0h"


class ReminderFilter(StrEnum):
    ALL = "all"
    UPCOMING = "upcoming"
    PAST = "past"


@dataclass(slots=True, frozen=True)
class ReminderNotification:
    reminder: Reminder
    threshold: Threshold
    title: str
    body: str


def reminder_deadline(reminder: Reminder) -> datetime:
    """Local deadline (date + time), EPOCH when either part is missing or malformed."""
    return combine_or_epoch(reminder.date, reminder.time)


def time_until(deadline: datetime, now: datetime) -> tuple[int, int]:
    """(hours, days) from now to deadline, each truncated toward zero."""
    seconds = (deadline - now).total_seconds()
    return int(seconds / 3600), int(seconds / 86400)


def evaluate_reminder(reminder: Reminder, now: datetime) -> list[Threshold]:
    """Thresholds the reminder sits on at `now` (usually none, at most one per unit)."""
    deadline = reminder_deadline(reminder)
    if deadline == EPOCH:
        return []

    hours, days = time_until(deadline, now)
    hits: list[Threshold] = []
    if days == 7:
        hits.append(Threshold.ONE_WEEK)
    if days == 3:
        hits.append(Threshold.THREE_DAYS)
    if hours == 18:
        hits.append(Threshold.EIGHTEEN_HOURS)
    if hours == 0:
        hits.append(Threshold.DUE_NOW)
    return hits


def build_notification(reminder: Reminder, threshold: Threshold) -> ReminderNotification:
    if threshold is Threshold.DUE_NOW:
        return ReminderNotification(reminder, threshold, "Reminder Due", f'"{reminder.title}" is due now!')

    lead = {
        Threshold.ONE_WEEK: "1 week",
        Threshold.THREE_DAYS: "3 days",
        Threshold.EIGHTEEN_HOURS: "18 hours",
    }[threshold]
    return ReminderNotification(reminder, threshold, "Upcoming Reminder", f'"{reminder.title}" is due in {lead}')


class ReminderScheduler:
    """
    Evaluates reminders on demand (`tick`).

    The scheduler decides which notifications are due; the notifier decides how
    (or whether) they reach the user.
    """

    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        clock: Clock,
        *,
        rollover: RolloverManager | None = None,
        suppress_repeats: bool = True,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._rollover = rollover
        self._suppress_repeats = suppress_repeats

    async def tick(self) -> list[ReminderNotification]:
        """One evaluation pass. Returns the notifications that were delivered."""
        if self._rollover is not None:
            try:
                self._rollover.check()
            except Exception:
                logger.exception("Rollover check failed")

        now = self._clock.now()
        # Snapshot: mutations during the awaits below publish a new tuple, not edit this one.
        reminders = self._store.reminders
        sent: list[ReminderNotification] = []

        for reminder in reminders:
            for threshold in evaluate_reminder(reminder, now):
                if self._suppress_repeats and threshold.value in self._store.notified_thresholds(reminder.id):
                    logger.debug("Skip repeat reminder=%s threshold=%s", reminder.id, threshold.value)
                    continue

                note = build_notification(reminder, threshold)
                if not await safe_deliver(self._notifier, note.title, note.body):
                    logger.warning("Reminder notification not delivered reminder=%s threshold=%s",
                                   reminder.id, threshold.value)
                    continue

                sent.append(note)
                logger.info("Reminder notified id=%s threshold=%s", reminder.id, threshold.value)
                if self._suppress_repeats and any(r.id == reminder.id for r in self._store.reminders):
                    self._store.mark_reminder_notified(reminder.id, threshold.value)

        return sent


async def run_reminder_scheduler(
        scheduler: ReminderScheduler,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
) -> None:
    """
    Simple polling loop: evaluate immediately, then every interval_seconds.

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            await scheduler.tick()
        except Exception:
            logger.exception("Reminder tick failed")

        await asyncio.sleep(sleep_s)


def sort_reminders(reminders: Iterable[Reminder]) -> list[Reminder]:
    return sorted(reminders, key=reminder_deadline)


def filter_reminders(
        reminders: Iterable[Reminder],
        now: datetime,
        mode: ReminderFilter | str = ReminderFilter.ALL,
) -> list[Reminder]:
    """Sorted reminders, optionally only upcoming (deadline after now) or past (before now)."""
    mode = ReminderFilter(mode)
    out = sort_reminders(reminders)
    if mode is ReminderFilter.UPCOMING:
        return [r for r in out if reminder_deadline(r) > now]
    if mode is ReminderFilter.PAST:
        return [r for r in out if reminder_deadline(r) < now]
    return out


def group_reminders_by_date(reminders: Iterable[Reminder]) -> dict[str, list[Reminder]]:
    """Group by "YYYY-MM-DD", keeping input order inside each day."""
    groups: dict[str, list[Reminder]] = {}
    for r in reminders:
        key = format_date(r.date) if r.date is not None else format_date(EPOCH.date())
        groups.setdefault(key, []).append(r)
    return groups
