# src/taskmaster/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskmaster.log"

# Loggers that run behind the REPL prompt; on the console they only show WARNING+.
_BACKGROUND_PREFIXES = (
    "taskmaster.storage.",
    "taskmaster.tasks.engine",
    "taskmaster.tasks.reminders",
    "taskmaster.tasks.rollover",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - taskmaster logs pass (notifications are logged here at INFO)
    - timers and the storage layer tick in the background, WARNING+ only
    - Python warnings and third-party loggers, ERROR+ only
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if not name.startswith("taskmaster."):
            return record.levelno >= logging.ERROR

        if name.startswith(_BACKGROUND_PREFIXES):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskmaster",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (stderr, filtered) plus a full file log in `log_dir`.

    Replaces any handlers already on the root logger. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"))
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
