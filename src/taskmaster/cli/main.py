# src/taskmaster/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the task engine (rollover +
reminder timers) and runs the console REPL on the same event loop.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        close = getattr(state.storage, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Storage close failed.", exc_info=True)


async def _run(state: AppState) -> None:
    async with state.engine:
        await run_console_loop(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
