# src/taskmaster/cli/commands.py

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from datetime import date

from ..core.clock import format_date, parse_date, parse_time_of_day
from ..core.state import AppState
from ..tasks.analytics import days_remaining, get_completion_stats, project_progress
from ..tasks.reminders import ReminderFilter, filter_reminders, group_reminders_by_date
from ..tasks.task_models import Task, TaskKind
from ..tasks.task_store import sort_daily_tasks, tasks_by_week

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

_TIME_RANGE = re.compile(r"^(\d{1,2}:\d{2})(?:-(\d{1,2}:\d{2}))?$")


class CommandError(ValueError):
    """Bad command usage; the message is shown to the user as-is."""


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /daily, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except CommandError as e:
            return str(e)
        except (ValueError, KeyError) as e:
            # Validation errors from the store are reported back, not logged as crashes.
            return f"Rejected: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _remember(state: AppState, listing: str, ids: Sequence[str]) -> None:
    state.last_listing[listing] = list(ids)


def _resolve(state: AppState, listing: str, ref: str) -> str:
    """
    Turn a user reference into an id.

    "#3" (or "3") -> third item of the last listing of that kind;
    anything else is treated as an id or a unique id prefix.
    """
    ids = state.last_listing.get(listing, [])
    raw = ref.lstrip("#")
    if raw.isdigit():
        idx = int(raw) - 1
        if 0 <= idx < len(ids):
            return ids[idx]
        raise CommandError(f"No item #{raw} in the last {listing} listing.")

    matches = [i for i in ids if i.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    return ref


def _need(args: list[str], n: int, usage: str) -> None:
    if len(args) < n:
        raise CommandError(f"Usage: {usage}")


def _parse_date_arg(raw: str) -> date:
    d = parse_date(raw)
    if d is None:
        raise CommandError(f"Invalid date {raw!r}, expected YYYY-MM-DD.")
    return d


def _split_times(args: list[str]) -> tuple[str | None, str | None, list[str]]:
    """Optional leading "HH:MM" or "HH:MM-HH:MM" token."""
    if args:
        m = _TIME_RANGE.match(args[0])
        if m and parse_time_of_day(m.group(1)) is not None:
            return m.group(1), m.group(2), args[1:]
    return None, None, args


def _fmt_task(i: int, t: Task) -> str:
    mark = "x" if t.completed else " "
    when = ""
    if t.start_time:
        when = f" {t.start_time}" + (f"-{t.end_time}" if t.end_time else "")
    return f"  #{i} [{mark}]{when} {t.title}"


# ---- commands ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.store
    return (
        "Status:\n"
        f"  Daily tasks: {len(s.daily_tasks)} ({sum(t.completed for t in s.daily_tasks)} done)\n"
        f"  Planned tasks: {len(s.planned_tasks)} in {len(s.projects)} projects\n"
        f"  Free tasks: {len(s.free_tasks)}\n"
        f"  Reminders: {len(s.reminders)}\n"
        f"  Last reset: {s.last_reset_date}\n"
        f"  Engine: {'running' if state.engine.running else 'stopped'}"
    )


def _list_tasks(state: AppState, kind: TaskKind, tasks: Sequence[Task]) -> str:
    _remember(state, kind.value, [t.id for t in tasks])
    if not tasks:
        return f"No {kind.value} tasks."
    return "\n".join([f"{kind.value.capitalize()} tasks:"] + [_fmt_task(i, t) for i, t in enumerate(tasks, 1)])


def cmd_daily(state: AppState, args: list[str]) -> str:
    """
    /daily list
    /daily add [HH:MM[-HH:MM]] <title>
    """
    if not args or args[0] == "list":
        return _list_tasks(state, TaskKind.DAILY, sort_daily_tasks(state.store.daily_tasks))
    if args[0] != "add":
        raise CommandError("Usage: /daily list | /daily add [HH:MM[-HH:MM]] <title>")

    start, end, rest = _split_times(args[1:])
    _need(rest, 1, "/daily add [HH:MM[-HH:MM]] <title>")
    task = state.store.add_daily_task(" ".join(rest), start_time=start, end_time=end)
    return f"Daily task added: {task.title}"


def cmd_free(state: AppState, args: list[str]) -> str:
    if not args or args[0] == "list":
        return _list_tasks(state, TaskKind.FREE, list(state.store.free_tasks))
    if args[0] != "add":
        raise CommandError("Usage: /free list | /free add <title>")
    _need(args, 2, "/free add <title>")
    task = state.store.add_free_task(" ".join(args[1:]))
    return f"Free task added: {task.title}"


def cmd_planned(state: AppState, args: list[str]) -> str:
    return _list_tasks(state, TaskKind.PLANNED, list(state.store.planned_tasks))


def cmd_toggle(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/toggle <daily|planned|free> <#n|id>")
    kind = TaskKind.parse(args[0])
    task_id = _resolve(state, kind.value, args[1])
    result = state.store.toggle_completion(task_id, kind)
    if result is None:
        return f"No {kind.value} task {args[1]}."
    return "Marked done." if result else "Marked not done."


def cmd_delete(state: AppState, args: list[str]) -> str:
    _need(args, 2, "/delete <daily|planned|free> <#n|id>")
    kind = TaskKind.parse(args[0])
    state.store.delete_task(_resolve(state, kind.value, args[1]), kind)
    return "Deleted."


def cmd_remind(state: AppState, args: list[str]) -> str:
    """/remind <YYYY-MM-DD> <HH:MM> <title>"""
    _need(args, 3, "/remind <YYYY-MM-DD> <HH:MM> <title>")
    day = _parse_date_arg(args[0])
    if parse_time_of_day(args[1]) is None:
        raise CommandError(f"Invalid time {args[1]!r}, expected HH:MM.")
    reminder = state.store.add_reminder(" ".join(args[2:]), date=day, time=args[1])
    return f"Reminder added: {reminder.title} ({format_date(day)} {reminder.time})"


def cmd_reminders(state: AppState, args: list[str]) -> str:
    mode = args[0].lower() if args else ReminderFilter.ALL.value
    if mode not in {f.value for f in ReminderFilter}:
        raise CommandError("Usage: /reminders [all|upcoming|past]")

    items = filter_reminders(state.store.reminders, state.clock.now(), mode)
    _remember(state, "reminder", [r.id for r in items])
    if not items:
        return "No reminders found."

    lines: list[str] = []
    n = 0
    for day, group in group_reminders_by_date(items).items():
        lines.append(day)
        for r in group:
            n += 1
            lines.append(f"  #{n} {r.time} {r.title}")
    return "\n".join(lines)


def cmd_unremind(state: AppState, args: list[str]) -> str:
    _need(args, 1, "/unremind <#n|id>")
    state.store.delete_reminder(_resolve(state, "reminder", args[0]))
    return "Reminder deleted."


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project list
    /project add <start YYYY-MM-DD> <end YYYY-MM-DD> <title>
    /project tasks <#n|id>
    /project addtask <#n|id> <week> <title>
    /project delete <#n|id>
    """
    store = state.store
    sub = args[0].lower() if args else "list"

    if sub == "list":
        projects = store.get_all_projects()
        _remember(state, "project", [p.id for p in projects])
        if not projects:
            return "No projects yet."
        today = state.clock.now().date()
        return "\n".join(
            f"  #{i} {p.title} ({format_date(p.start_date)}..{format_date(p.end_date)}) "
            f"{project_progress(p)}% done, {days_remaining(p, today)} days left"
            for i, p in enumerate(projects, 1)
        )

    if sub == "add":
        _need(args, 4, "/project add <start YYYY-MM-DD> <end YYYY-MM-DD> <title>")
        project_id = store.add_project(
            " ".join(args[3:]),
            start_date=_parse_date_arg(args[1]),
            end_date=_parse_date_arg(args[2]),
        )
        return f"Project added: {project_id}"

    if sub == "tasks":
        _need(args, 2, "/project tasks <#n|id>")
        project = store.get_project(_resolve(state, "project", args[1]))
        if project is None:
            return f"No project {args[1]}."
        ordered: list[Task] = []
        lines = [project.title]
        for week, tasks in tasks_by_week(project).items():
            lines.append(f" Week {week}")
            for t in tasks:
                ordered.append(t)
                lines.append(_fmt_task(len(ordered), t))
        _remember(state, TaskKind.PLANNED.value, [t.id for t in ordered])
        return "\n".join(lines)

    if sub == "addtask":
        _need(args, 4, "/project addtask <#n|id> <week> <title>")
        try:
            week = int(args[2])
        except ValueError:
            raise CommandError(f"Invalid week {args[2]!r}.") from None
        task = store.add_task_to_project(_resolve(state, "project", args[1]), " ".join(args[3:]), week=week)
        return f"Task added to {task.project_title} (week {task.week})."

    if sub == "delete":
        _need(args, 2, "/project delete <#n|id>")
        store.delete_project(_resolve(state, "project", args[1]))
        return "Project deleted."

    raise CommandError("Usage: /project list|add|tasks|addtask|delete")


def cmd_stats(state: AppState, args: list[str]) -> str:
    lines = ["This week (completed/total):"]
    for d in get_completion_stats(state.store, state.clock):
        lines.append(f"  {d.name} {d.date}: {d.completed}/{d.total}")
    return "\n".join(lines)


def cmd_reset(state: AppState, args: list[str]) -> str:
    state.store.reset_completed_tasks()
    return "Daily tasks reset."


registry.register("help", cmd_help, "Show this help", aliases=["h", "?"])
registry.register("status", cmd_status, "Show collection counts and engine state")
registry.register("daily", cmd_daily, "list | add [HH:MM[-HH:MM]] <title>")
registry.register("free", cmd_free, "list | add <title>")
registry.register("planned", cmd_planned, "List all planned tasks")
registry.register("toggle", cmd_toggle, "<daily|planned|free> <#n|id> - flip completion")
registry.register("delete", cmd_delete, "<daily|planned|free> <#n|id> - delete a task", aliases=["rm"])
registry.register("remind", cmd_remind, "<YYYY-MM-DD> <HH:MM> <title> - add a reminder")
registry.register("reminders", cmd_reminders, "[all|upcoming|past] - list reminders by date")
registry.register("unremind", cmd_unremind, "<#n|id> - delete a reminder")
registry.register("project", cmd_project, "list | add | tasks | addtask | delete")
registry.register("stats", cmd_stats, "Weekly completion stats (Sun..Sat)")
registry.register("reset", cmd_reset, "Reset today's daily tasks to not done")
