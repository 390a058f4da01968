# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taskmaster.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("taskmaster.cli.commands", logging.INFO, True),
        ("taskmaster.notify.notifiers", logging.INFO, True),
        ("taskmaster.tasks.reminders", logging.INFO, False),
        ("taskmaster.tasks.reminders", logging.WARNING, True),
        ("taskmaster.tasks.rollover", logging.INFO, False),
        ("taskmaster.storage.kv_store", logging.DEBUG, False),
        ("taskmaster.storage.kv_store", logging.WARNING, True),
        ("asyncio", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_full_file_log(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        assert log_file == tmp_path / "logs" / "taskmaster.log"
        assert len(root.handlers) == 2

        logging.getLogger("taskmaster.storage.kv_store").debug("kv set key=dailyTasks")
        for h in root.handlers:
            h.flush()
        assert "kv set key=dailyTasks" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
