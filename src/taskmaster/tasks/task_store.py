# src/taskmaster/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date
from typing import Any, TypeVar

from ..core.clock import SystemClock, format_date, parse_date, time_sort_key
from ..core.ports import Clock, KeyValueStorage, Notifier
from ..notify.notifiers import fire_and_forget, safe_deliver
from .task_models import PlannedTask, Project, Reminder, Task, TaskHistory, TaskKind, new_id

logger = logging.getLogger(__name__)

KEY_DAILY = "dailyTasks"
KEY_PLANNED = "plannedTasks"
KEY_FREE = "freeTasks"
KEY_REMINDERS = "reminders"
KEY_HISTORY = "taskHistory"
KEY_PROJECTS = "projects"
KEY_LAST_RESET = "lastResetDate"
KEY_NOTIFIED = "reminderNotifications"

T = TypeVar("T")


def _require_title(title: str) -> str:
    if not title or not title.strip():
        raise ValueError("title is required")
    return title.strip()


def _require_week(week: int) -> int:
    if int(week) < 1:
        raise ValueError("week must be a positive integer")
    return int(week)


def format_long_date(d: date) -> str:
    """'Oct 7, 2024' style date used in notification bodies."""
    return f"{d:%b} {d.day}, {d.year}"


class TaskStore:
    """
    Owner of all task collections.

    Collections are immutable tuples. Every mutation builds the new tuple fully,
    publishes it with a single assignment and then persists it, so readers
    (timer ticks, the console) never observe a half-applied change.

    Planned tasks that belong to a project are stored once, inside the project.
    `planned_tasks` is a projection: stand-alone planned tasks followed by the
    tasks of every project. The persisted "plannedTasks" key still receives that
    full flat list so the on-disk layout stays the same.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._storage = storage
        self._clock: Clock = clock or SystemClock()
        self._notifier = notifier

        self._daily: tuple[Task, ...] = ()
        self._free: tuple[Task, ...] = ()
        self._standalone_planned: tuple[PlannedTask, ...] = ()
        self._reminders: tuple[Reminder, ...] = ()
        self._history: tuple[TaskHistory, ...] = ()
        self._projects: tuple[Project, ...] = ()
        self._last_reset_date: str = format_date(self._today())
        self._notified: dict[str, tuple[str, ...]] = {}

        self.load()

    def _today(self) -> date:
        return self._clock.now().date()

    # ---- persistence helpers ----

    def _read_json(self, key: str) -> Any:
        try:
            raw = self._storage.get(key)
        except Exception:
            logger.exception("Storage read failed key=%s; using default.", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Corrupt JSON under key=%s; using default.", key)
            return None

    def _load_list(self, key: str, factory: Callable[[dict[str, Any]], T]) -> tuple[T, ...]:
        data = self._read_json(key)
        if data is None:
            return ()
        if not isinstance(data, list):
            logger.warning("Expected a list under key=%s, got %s; using default.", key, type(data).__name__)
            return ()

        out: list[T] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                out.append(factory(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping bad record under key=%s: %s", key, e)
        return tuple(out)

    def _write(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode key=%s; not persisted.", key)
            return
        try:
            self._storage.set(key, payload)
        except Exception:
            logger.exception("Storage write failed key=%s", key)

    def _save_daily(self) -> None:
        self._write(KEY_DAILY, [t.to_dict() for t in self._daily])

    def _save_free(self) -> None:
        self._write(KEY_FREE, [t.to_dict() for t in self._free])

    def _save_planned(self) -> None:
        # Projects first: a torn write leaves at most a stale flat list, which load() filters.
        self._write(KEY_PROJECTS, [p.to_dict() for p in self._projects])
        self._write(KEY_PLANNED, [t.to_dict() for t in self.planned_tasks])

    def _save_reminders(self) -> None:
        self._write(KEY_REMINDERS, [r.to_dict() for r in self._reminders])

    def _save_history(self) -> None:
        self._write(KEY_HISTORY, [h.to_dict() for h in self._history])

    def _save_notified(self) -> None:
        self._write(KEY_NOTIFIED, {k: list(v) for k, v in self._notified.items()})

    def load(self) -> None:
        """Rebuild in-memory state from storage. Never raises."""
        self._daily = self._load_list(KEY_DAILY, Task.from_dict)
        self._free = self._load_list(KEY_FREE, Task.from_dict)
        self._reminders = self._load_list(KEY_REMINDERS, Reminder.from_dict)
        self._projects = self._load_list(KEY_PROJECTS, Project.from_dict)

        owned = {t.id for p in self._projects for t in p.tasks}
        flat = self._load_list(KEY_PLANNED, PlannedTask.from_dict)
        self._standalone_planned = tuple(t for t in flat if t.id not in owned)

        history: dict[str, TaskHistory] = {}
        for h in self._load_list(KEY_HISTORY, TaskHistory.from_dict):
            history[h.date] = h
        self._history = tuple(history.values())

        # Stored as a bare "YYYY-MM-DD" string; tolerate a JSON-quoted one.
        try:
            last = self._storage.get(KEY_LAST_RESET)
        except Exception:
            logger.exception("Storage read failed key=%s; using today.", KEY_LAST_RESET)
            last = None
        parsed = parse_date(last.strip().strip('"')) if isinstance(last, str) else None
        if parsed is None:
            # First run or unreadable value: persist today so a later start sees the day change.
            self.set_last_reset_date(self._today())
        else:
            self._last_reset_date = format_date(parsed)

        notified = self._read_json(KEY_NOTIFIED)
        self._notified = {}
        if isinstance(notified, dict):
            for rid, keys in notified.items():
                if isinstance(rid, str) and isinstance(keys, list):
                    self._notified[rid] = tuple(str(k) for k in keys)

        logger.info(
            "TaskStore loaded daily=%d planned=%d free=%d reminders=%d projects=%d history=%d last_reset=%s",
            len(self._daily),
            len(self.planned_tasks),
            len(self._free),
            len(self._reminders),
            len(self._projects),
            len(self._history),
            self._last_reset_date,
        )

    # ---- queries ----

    @property
    def daily_tasks(self) -> tuple[Task, ...]:
        return self._daily

    @property
    def planned_tasks(self) -> tuple[PlannedTask, ...]:
        return self._standalone_planned + tuple(t for p in self._projects for t in p.tasks)

    @property
    def free_tasks(self) -> tuple[Task, ...]:
        return self._free

    @property
    def reminders(self) -> tuple[Reminder, ...]:
        return self._reminders

    @property
    def task_history(self) -> tuple[TaskHistory, ...]:
        return self._history

    @property
    def projects(self) -> tuple[Project, ...]:
        return self._projects

    @property
    def last_reset_date(self) -> str:
        return self._last_reset_date

    def get_project(self, project_id: str) -> Project | None:
        return next((p for p in self._projects if p.id == project_id), None)

    def get_all_projects(self) -> tuple[Project, ...]:
        return self._projects

    def history_for(self, day: str) -> TaskHistory | None:
        return next((h for h in self._history if h.date == day), None)

    # ---- task creation ----

    def add_daily_task(
        self,
        title: str,
        *,
        date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description: str | None = None,
    ) -> Task:
        task = Task(
            id=new_id(),
            title=_require_title(title),
            date=date or self._today(),
            start_time=start_time,
            end_time=end_time,
            description=description,
        )
        self._daily = self._daily + (task,)
        self._save_daily()
        logger.debug("Daily task added id=%s", task.id)
        return task

    def add_free_task(
        self,
        title: str,
        *,
        date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description: str | None = None,
    ) -> Task:
        task = Task(
            id=new_id(),
            title=_require_title(title),
            date=date,
            start_time=start_time,
            end_time=end_time,
            description=description,
        )
        self._free = self._free + (task,)
        self._save_free()
        logger.debug("Free task added id=%s", task.id)
        return task

    def add_planned_task(
        self,
        title: str,
        *,
        week: int,
        project_title: str = "",
        date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description: str | None = None,
    ) -> PlannedTask:
        task = PlannedTask(
            id=new_id(),
            title=_require_title(title),
            date=date,
            start_time=start_time,
            end_time=end_time,
            description=description,
            week=_require_week(week),
            project_title=project_title,
        )
        self._standalone_planned = self._standalone_planned + (task,)
        self._save_planned()
        logger.debug("Planned task added id=%s week=%s", task.id, task.week)
        return task

    # ---- reminders ----

    def add_reminder(
        self,
        title: str,
        *,
        date: date | None,
        time: str | None,
        description: str = "",
    ) -> Reminder:
        """
        Create a reminder and send the "Reminder Set" confirmation.

        The confirmation is fire-and-forget: it does not delay the caller and a
        failed delivery does not undo the reminder.
        """
        if date is None or not (time or "").strip():
            raise ValueError("reminder needs both date and time")

        reminder = Reminder(
            id=new_id(),
            title=_require_title(title),
            date=date,
            time=time.strip(),
            description=description or "",
        )
        self._reminders = self._reminders + (reminder,)
        self._save_reminders()
        logger.info("Reminder added id=%s due=%s %s", reminder.id, reminder.date, reminder.time)

        if self._notifier is not None:
            fire_and_forget(
                safe_deliver(
                    self._notifier,
                    "Reminder Set",
                    f'Reminder set for "{reminder.title}" on {format_long_date(date)} at {reminder.time}',
                )
            )
        return reminder

    def delete_reminder(self, reminder_id: str) -> None:
        self._reminders = tuple(r for r in self._reminders if r.id != reminder_id)
        self._save_reminders()
        if reminder_id in self._notified:
            self._notified = {k: v for k, v in self._notified.items() if k != reminder_id}
            self._save_notified()

    def notified_thresholds(self, reminder_id: str) -> tuple[str, ...]:
        return self._notified.get(reminder_id, ())

    def mark_reminder_notified(self, reminder_id: str, threshold: str) -> None:
        current = self._notified.get(reminder_id, ())
        if threshold in current:
            return
        self._notified = {**self._notified, reminder_id: current + (threshold,)}
        self._save_notified()

    # ---- completion / deletion ----

    def toggle_completion(self, task_id: str, kind: TaskKind | str) -> bool | None:
        """Flip `completed` on the task. Returns the new value, or None if not found."""
        kind = TaskKind.parse(kind)
        flipped: bool | None = None

        def flip(t: T) -> T:
            nonlocal flipped
            flipped = not t.completed  # type: ignore[attr-defined]
            return replace(t, completed=flipped)  # type: ignore[type-var]

        if kind is TaskKind.DAILY:
            self._daily = _map_by_id(self._daily, task_id, flip)
            if flipped is not None:
                self._save_daily()
        elif kind is TaskKind.FREE:
            self._free = _map_by_id(self._free, task_id, flip)
            if flipped is not None:
                self._save_free()
        else:
            standalone = _map_by_id(self._standalone_planned, task_id, flip)
            projects = tuple(replace(p, tasks=_map_by_id(p.tasks, task_id, flip)) for p in self._projects)
            if flipped is not None:
                self._standalone_planned, self._projects = standalone, projects
                self._save_planned()

        if flipped is None:
            logger.debug("toggle_completion: no %s task id=%s", kind.value, task_id)
        return flipped

    def delete_task(self, task_id: str, kind: TaskKind | str) -> None:
        kind = TaskKind.parse(kind)
        if kind is TaskKind.DAILY:
            self._daily = tuple(t for t in self._daily if t.id != task_id)
            self._save_daily()
        elif kind is TaskKind.FREE:
            self._free = tuple(t for t in self._free if t.id != task_id)
            self._save_free()
        else:
            self._standalone_planned = tuple(t for t in self._standalone_planned if t.id != task_id)
            self._projects = tuple(
                replace(p, tasks=tuple(t for t in p.tasks if t.id != task_id)) for p in self._projects
            )
            self._save_planned()

    def reset_completed_tasks(self) -> None:
        """Mark every daily task as not completed and stamp it with today's date."""
        today = self._today()
        self.replace_daily_tasks(replace(t, completed=False, date=today) for t in self._daily)

    # ---- projects ----

    def add_project(
        self,
        title: str,
        *,
        start_date: date,
        end_date: date,
        description: str = "",
    ) -> str:
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        project = Project(
            id=new_id(),
            title=_require_title(title),
            description=description or "",
            start_date=start_date,
            end_date=end_date,
        )
        self._projects = self._projects + (project,)
        self._save_planned()
        logger.info("Project added id=%s title=%r", project.id, project.title)
        return project.id

    def update_project(self, project: Project) -> None:
        if self.get_project(project.id) is None:
            raise KeyError(project.id)
        if project.end_date < project.start_date:
            raise ValueError("end_date must not be before start_date")
        _require_title(project.title)
        self._projects = tuple(project if p.id == project.id else p for p in self._projects)
        self._save_planned()

    def delete_project(self, project_id: str) -> None:
        """Remove the project together with every planned task it owns."""
        project = self.get_project(project_id)
        if project is None:
            return
        self._projects = tuple(p for p in self._projects if p.id != project_id)
        self._save_planned()
        logger.info("Project deleted id=%s tasks=%d", project_id, len(project.tasks))

    def add_task_to_project(
        self,
        project_id: str,
        title: str,
        *,
        week: int,
        date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description: str | None = None,
    ) -> PlannedTask:
        project = self.get_project(project_id)
        if project is None:
            raise KeyError(project_id)

        task = PlannedTask(
            id=new_id(),
            title=_require_title(title),
            date=date,
            start_time=start_time,
            end_time=end_time,
            description=description,
            week=_require_week(week),
            project_title=project.title,
        )
        self._replace_project(replace(project, tasks=project.tasks + (task,)))
        return task

    def update_task_in_project(self, project_id: str, task: PlannedTask) -> None:
        project = self.get_project(project_id)
        if project is None:
            raise KeyError(project_id)
        if not any(t.id == task.id for t in project.tasks):
            raise KeyError(task.id)
        _require_title(task.title)
        _require_week(task.week)
        tasks = tuple(task if t.id == task.id else t for t in project.tasks)
        self._replace_project(replace(project, tasks=tasks))

    def delete_task_from_project(self, project_id: str, task_id: str) -> None:
        project = self.get_project(project_id)
        if project is None:
            return
        self._replace_project(replace(project, tasks=tuple(t for t in project.tasks if t.id != task_id)))

    def _replace_project(self, project: Project) -> None:
        self._projects = tuple(project if p.id == project.id else p for p in self._projects)
        self._save_planned()

    # ---- rollover support ----

    def replace_daily_tasks(self, tasks: Iterable[Task]) -> None:
        self._daily = tuple(tasks)
        self._save_daily()

    def replace_task_history(self, entries: Iterable[TaskHistory]) -> None:
        self._history = tuple(entries)
        self._save_history()

    def upsert_history(self, entry: TaskHistory) -> None:
        """Insert or overwrite the history entry for entry.date (one entry per date)."""
        if self.history_for(entry.date) is None:
            self.replace_task_history(self._history + (entry,))
        else:
            self.replace_task_history(entry if h.date == entry.date else h for h in self._history)

    def set_last_reset_date(self, day: date) -> None:
        self._last_reset_date = format_date(day)
        try:
            self._storage.set(KEY_LAST_RESET, self._last_reset_date)
        except Exception:
            logger.exception("Storage write failed key=%s", KEY_LAST_RESET)


def _map_by_id(items: tuple[T, ...], task_id: str, fn: Callable[[T], T]) -> tuple[T, ...]:
    return tuple(fn(t) if t.id == task_id else t for t in items)  # type: ignore[attr-defined]


def sort_daily_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Incomplete tasks first, then by start time (missing/invalid times sort first)."""
    return sorted(tasks, key=lambda t: (t.completed, time_sort_key(t.start_time)))


def tasks_by_week(project: Project) -> dict[int, list[PlannedTask]]:
    """Group a project's tasks by week number, weeks ascending, task order preserved."""
    out: dict[int, list[PlannedTask]] = {}
    for week in sorted({t.week for t in project.tasks}):
        out[week] = [t for t in project.tasks if t.week == week]
    return out


def counts(tasks: Iterable[Task]) -> tuple[int, int]:
    """(completed, total) for a task collection."""
    items = list(tasks)
    return sum(1 for t in items if t.completed), len(items)
