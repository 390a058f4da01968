# src/taskmaster/tasks/analytics.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from ..core.clock import format_date
from ..core.ports import Clock
from .task_models import Project
from .task_store import TaskStore, counts

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(slots=True, frozen=True)
class DayStats:
    name: str
    date: str
    completed: int
    total: int


def week_start(day: date) -> date:
    """Sunday on or before `day`."""
    # date.weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def get_completion_stats(store: TaskStore, clock: Clock) -> list[DayStats]:
    """
    Daily-task completion for Sun..Sat of the current week.

    Per day: the history entry if one exists; otherwise live counts for today
    (total never below completed); otherwise (0, 0).
    """
    today = clock.now().date()
    start = week_start(today)
    history = {h.date: h for h in store.task_history}

    out: list[DayStats] = []
    for i, name in enumerate(DAY_NAMES):
        day = start + timedelta(days=i)
        key = format_date(day)
        entry = history.get(key)
        if entry is not None:
            out.append(DayStats(name, key, entry.completed, entry.total))
        elif day == today:
            completed, total = counts(store.daily_tasks)
            out.append(DayStats(name, key, completed, max(total, completed)))
        else:
            out.append(DayStats(name, key, 0, 0))
    return out


def project_progress(project: Project) -> int:
    """Completed share of the project's tasks, as a rounded percentage."""
    if not project.tasks:
        return 0
    completed, total = counts(project.tasks)
    # Half-up rounding (12.5 -> 13), not round()'s half-to-even.
    return int(completed * 100 / total + 0.5)


def days_remaining(project: Project, today: date) -> int:
    return max(0, (project.end_date - today).days)
