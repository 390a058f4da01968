# src/taskmaster/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete implementations.
This keeps storage/notification/time sources swappable and makes testing easier:
tests inject an in-memory storage, a fake clock and a recording notifier.
"""

from datetime import datetime
from typing import Awaitable, Protocol


class Clock(Protocol):
    """Wall-clock source. Returns naive datetimes in the local time zone."""

    def now(self) -> datetime: ...


class Notifier(Protocol):
    """
    Delivers a titled notification to the user.

    Delivery is best-effort:
    - returns True when the notification was handed to the transport
    - returns False on permission denied / unsupported environment / transport failure
    - never raises
    """

    def deliver(self, title: str, body: str) -> Awaitable[bool]: ...


class KeyValueStorage(Protocol):
    """Durable key-value persistence, one serialized record per key."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
