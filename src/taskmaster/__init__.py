"""taskmaster: daily tasks, projects and reminders with a time-driven lifecycle engine."""

__version__ = "0.1.0"
