# tests/test_task_models.py

from __future__ import annotations

from datetime import date, time

import pytest

from taskmaster.core.clock import parse_date, parse_time_of_day, time_sort_key
from taskmaster.tasks.task_models import PlannedTask, Project, Reminder, TaskHistory, TaskKind


def test_parse_date_accepts_plain_and_timestamp_forms() -> None:
    assert parse_date("2024-05-20") == date(2024, 5, 20)
    assert parse_date("2024-05-20T00:00:00") == date(2024, 5, 20)
    assert parse_date(date(2024, 5, 20)) == date(2024, 5, 20)
    assert parse_date("20/05/2024") is None
    assert parse_date(12345) is None
    assert parse_date("") is None


def test_parse_time_of_day_formats_and_sentinel() -> None:
    assert parse_time_of_day("09:05") == time(9, 5)
    assert parse_time_of_day("9:05 pm") == time(21, 5)
    assert parse_time_of_day("25:00") is None
    assert time_sort_key(None) == time(0, 0)
    assert time_sort_key("junk") == time(0, 0)


def test_planned_task_from_legacy_record() -> None:
    task = PlannedTask.from_dict(
        {"id": "t1", "title": "Draft", "completed": 1, "week": "3", "projectTitle": "Thesis",
         "date": "2024-05-20T00:00:00", "startTime": "", "description": None}
    )
    assert task.week == 3
    assert task.completed is True
    assert task.date == date(2024, 5, 20)
    assert task.start_time is None
    assert task.to_dict()["projectTitle"] == "Thesis"


def test_project_from_dict_tolerates_bad_tasks_and_dates() -> None:
    project = Project.from_dict(
        {"id": "p1", "title": "X", "startDate": "2024-05-10", "endDate": "nonsense",
         "tasks": [{"title": "no id"}, {"id": "t1", "title": "ok", "week": 0}]}
    )
    assert project.end_date == project.start_date
    assert [t.id for t in project.tasks] == ["t1"]
    assert project.tasks[0].week == 1


def test_reminder_and_history_records() -> None:
    r = Reminder.from_dict({"id": "r1", "title": "Dentist", "date": "2024-05-20", "time": "09:00"})
    assert r.to_dict() == {"id": "r1", "title": "Dentist", "date": "2024-05-20", "time": "09:00", "description": ""}

    h = TaskHistory.from_dict({"date": "2024-05-20", "completed": 5, "total": 2})
    assert (h.completed, h.total) == (5, 5)
    with pytest.raises(ValueError):
        TaskHistory.from_dict({"date": "someday"})


def test_task_kind_parse() -> None:
    assert TaskKind.parse(" Daily ") is TaskKind.DAILY
    with pytest.raises(ValueError):
        TaskKind.parse("monthly")
