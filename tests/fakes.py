# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from taskmaster.core.ports import KeyValueStorage, Notifier


class FakeClock:
    """
    Deterministic clock for unit tests.

    Time only moves when the test calls set() / advance().
    """

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@dataclass(slots=True)
class SentNotification:
    title: str
    body: str


@dataclass(slots=True)
class FakeNotifier(Notifier):
    """
    Recording notifier.

    - `granted=False` behaves like a user who denied notification permission
    - `explode=True` raises from deliver() to exercise error handling
    """

    granted: bool = True
    explode: bool = False
    sent: list[SentNotification] = field(default_factory=list)

    async def deliver(self, title: str, body: str) -> bool:
        if self.explode:
            raise RuntimeError("transport down")
        if not self.granted:
            return False
        self.sent.append(SentNotification(title=title, body=body))
        return True

    def titles(self) -> list[str]:
        return [n.title for n in self.sent]

    def bodies(self) -> list[str]:
        return [n.body for n in self.sent]


class FlakyStorage(KeyValueStorage):
    """
    In-memory storage that fails on demand.

    - `broken=True` raises OSError from every get() / set()
    - keys in `fail_writes` raise from set() for that key only
    - `writes` records the keys of successful set() calls, in order
    """

    def __init__(self, *, broken: bool = False, fail_writes: tuple[str, ...] = ()) -> None:
        self.broken = broken
        self.fail_writes = set(fail_writes)
        self.data: dict[str, str] = {}
        self.writes: list[str] = []

    def get(self, key: str) -> str | None:
        if self.broken:
            raise OSError("disk unavailable")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.broken or key in self.fail_writes:
            raise OSError(f"write failed for {key}")
        self.data[key] = value
        self.writes.append(key)
