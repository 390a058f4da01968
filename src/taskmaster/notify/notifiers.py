# src/taskmaster/notify/notifiers.py

"""Notification delivery (log + OS toast), best-effort."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from collections.abc import Awaitable
from dataclasses import dataclass, field

from ..core.ports import Notifier

logger = logging.getLogger(__name__)

# Keeps fire-and-forget tasks referenced until they finish.
_background: set[asyncio.Task] = set()


def _run_quiet(*cmd: str) -> bool:
    """Fire-and-forget subprocess, ignore failures."""
    try:
        subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return True
    except (FileNotFoundError, OSError):
        return False


def _escape_applescript(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _escape_powershell(text: str) -> str:
    return text.replace("'", "''")


def _windows_balloon_script(title: str, body: str) -> str:
    """Tray balloon via System.Windows.Forms; stays up for 5 s."""
    return (
        "Add-Type -AssemblyName System.Windows.Forms; "
        "$n = New-Object System.Windows.Forms.NotifyIcon; "
        "$n.Icon = [System.Drawing.SystemIcons]::Information; "
        "$n.Visible = $true; "
        f"$n.ShowBalloonTip(5000, '{_escape_powershell(title)}', '{_escape_powershell(body)}', "
        "[System.Windows.Forms.ToolTipIcon]::Info); "
        "Start-Sleep -Seconds 5; $n.Dispose()"
    )


@dataclass(slots=True)
class SentNotification:
    title: str
    body: str


@dataclass(slots=True)
class LogNotifier:
    """
    Writes notifications to the log (and keeps them for the console to print).

    `permission_granted=False` models a user who denied notifications: nothing is delivered.
    """

    permission_granted: bool = True
    sent: list[SentNotification] = field(default_factory=list)

    async def deliver(self, title: str, body: str) -> bool:
        if not self.permission_granted:
            logger.debug("Notification suppressed (permission denied): %s", title)
            return False
        self.sent.append(SentNotification(title=title, body=body))
        logger.info("NOTIFY %s: %s", title, body)
        return True


class DesktopNotifier:
    """Cross-platform OS notification toast."""

    def __init__(self, *, app_name: str = "TaskMaster", permission_granted: bool = True) -> None:
        self.app_name = app_name
        self.permission_granted = permission_granted

    async def deliver(self, title: str, body: str) -> bool:
        if not self.permission_granted:
            logger.debug("Desktop notification suppressed (permission denied): %s", title)
            return False

        if sys.platform == "darwin":
            ok = _run_quiet(
                "osascript", "-e",
                f'display notification "{_escape_applescript(body)}" '
                f'with title "{_escape_applescript(title)}"',
            )
        elif sys.platform.startswith("linux"):
            ok = _run_quiet("notify-send", "-a", self.app_name, title, body)
        elif sys.platform == "win32":
            ok = _run_quiet(
                "powershell.exe", "-NoProfile", "-WindowStyle", "Hidden", "-Command",
                _windows_balloon_script(title, body),
            )
        else:
            ok = False

        if not ok:
            logger.debug("Desktop notification unsupported on this system: %s", title)
        return ok


class FanoutNotifier:
    """Delivers to several notifiers; succeeds if any of them did."""

    def __init__(self, *notifiers: Notifier) -> None:
        self._notifiers = notifiers

    async def deliver(self, title: str, body: str) -> bool:
        delivered = False
        for n in self._notifiers:
            delivered = await safe_deliver(n, title, body) or delivered
        return delivered


async def safe_deliver(notifier: Notifier, title: str, body: str) -> bool:
    """Call notifier.deliver and turn any failure into False."""
    try:
        return bool(await notifier.deliver(title, body))
    except Exception:
        logger.exception("Notification delivery failed title=%r", title)
        return False


def fire_and_forget(coro: Awaitable[bool]) -> None:
    """
    Schedule a notification without waiting for it.

    Inside a running event loop the coroutine becomes a background task.
    Without a loop (plain synchronous callers) it is run to completion right away.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(_await(coro))
        return

    task = loop.create_task(_await(coro))
    _background.add(task)
    task.add_done_callback(_background.discard)


async def _await(coro: Awaitable[bool]) -> bool:
    return await coro
