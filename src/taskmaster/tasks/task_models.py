# src/taskmaster/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from ..core.clock import EPOCH_DATE, format_date, parse_date


class TaskKind(StrEnum):
    """Which flat collection a task lives in."""

    DAILY = "daily"
    PLANNED = "planned"
    FREE = "free"

    @classmethod
    def parse(cls, raw: str | TaskKind) -> TaskKind:
        if isinstance(raw, TaskKind):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            raise ValueError(f"unknown task kind: {raw!r}") from None


def new_id() -> str:
    return str(uuid.uuid4())


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v)
    return s if s.strip() else None


def _date_out(d: date | None) -> str | None:
    return format_date(d) if d is not None else None


def _non_negative_int(v: Any) -> int:
    try:
        return max(0, int(v))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    completed: bool = False
    date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
        }
        if self.date is not None:
            out["date"] = _date_out(self.date)
        if self.start_time:
            out["startTime"] = self.start_time
        if self.end_time:
            out["endTime"] = self.end_time
        if self.description:
            out["description"] = self.description
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(**_task_fields(data))


@dataclass(frozen=True, slots=True)
class PlannedTask(Task):
    """
    Task that belongs to a multi-week plan.

    project_title is a creation-time copy of the owning project's title.
    It is not a reference: renaming the project later does not change it.
    """

    week: int = 1
    project_title: str = ""

    def to_dict(self) -> dict[str, Any]:
        out = Task.to_dict(self)
        out["week"] = self.week
        out["projectTitle"] = self.project_title
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlannedTask:
        try:
            week = max(1, int(data.get("week") or 1))
        except (TypeError, ValueError):
            week = 1
        return cls(
            **_task_fields(data),
            week=week,
            project_title=str(data.get("projectTitle") or ""),
        )


def _task_fields(data: dict[str, Any]) -> dict[str, Any]:
    task_id = _opt_str(data.get("id"))
    if task_id is None:
        raise ValueError("task record without id")
    return {
        "id": task_id,
        "title": str(data.get("title") or ""),
        "completed": bool(data.get("completed", False)),
        "date": parse_date(data.get("date")),
        "start_time": _opt_str(data.get("startTime")),
        "end_time": _opt_str(data.get("endTime")),
        "description": _opt_str(data.get("description")),
    }


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    title: str
    description: str
    start_date: date
    end_date: date
    tasks: tuple[PlannedTask, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "startDate": format_date(self.start_date),
            "endDate": format_date(self.end_date),
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        project_id = _opt_str(data.get("id"))
        if project_id is None:
            raise ValueError("project record without id")

        raw_tasks = data.get("tasks")
        tasks: list[PlannedTask] = []
        if isinstance(raw_tasks, list):
            for item in raw_tasks:
                if not isinstance(item, dict):
                    continue
                try:
                    tasks.append(PlannedTask.from_dict(item))
                except ValueError:
                    continue

        start = parse_date(data.get("startDate")) or EPOCH_DATE
        end = parse_date(data.get("endDate")) or start
        return cls(
            id=project_id,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            start_date=start,
            end_date=max(start, end),
            tasks=tuple(tasks),
        )


@dataclass(frozen=True, slots=True)
class Reminder:
    """A dated reminder; date + time ("HH:MM") form the deadline in local time."""

    id: str
    title: str
    date: date | None
    time: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": _date_out(self.date),
            "time": self.time,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reminder:
        reminder_id = _opt_str(data.get("id"))
        if reminder_id is None:
            raise ValueError("reminder record without id")
        return cls(
            id=reminder_id,
            title=str(data.get("title") or ""),
            date=parse_date(data.get("date")),
            time=str(data.get("time") or ""),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True, slots=True)
class TaskHistory:
    """One day's daily-task outcome. `date` ("YYYY-MM-DD") is the natural key."""

    date: str
    completed: int
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "completed": self.completed, "total": self.total}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskHistory:
        day = parse_date(data.get("date"))
        if day is None:
            raise ValueError(f"history record with invalid date: {data.get('date')!r}")
        completed = _non_negative_int(data.get("completed"))
        total = max(_non_negative_int(data.get("total")), completed)
        return cls(date=format_date(day), completed=completed, total=total)
