# tests/test_notifiers.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from taskmaster.notify import notifiers
from taskmaster.notify.notifiers import DesktopNotifier, FanoutNotifier, LogNotifier

from .fakes import FakeNotifier


@pytest.fixture()
def launched(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, ...]]:
    calls: list[tuple[str, ...]] = []

    def fake_run_quiet(*cmd: str) -> bool:
        calls.append(cmd)
        return True

    monkeypatch.setattr(notifiers, "_run_quiet", fake_run_quiet)
    return calls


@pytest.mark.asyncio
async def test_windows_toast_carries_title_and_body(monkeypatch: pytest.MonkeyPatch, launched) -> None:
    monkeypatch.setattr(notifiers, "sys", SimpleNamespace(platform="win32"))

    assert await DesktopNotifier().deliver("Reminder Due", "\"O'Neil call\" is due now!") is True

    (cmd,) = launched
    assert cmd[0] == "powershell.exe"
    script = cmd[-1]
    assert "ShowBalloonTip" in script
    assert "'Reminder Due'" in script
    assert "'\"O''Neil call\" is due now!'" in script


@pytest.mark.asyncio
async def test_linux_toast_uses_notify_send(monkeypatch: pytest.MonkeyPatch, launched) -> None:
    monkeypatch.setattr(notifiers, "sys", SimpleNamespace(platform="linux"))

    assert await DesktopNotifier(app_name="TM").deliver("Upcoming Reminder", "soon") is True
    assert launched == [("notify-send", "-a", "TM", "Upcoming Reminder", "soon")]


@pytest.mark.asyncio
async def test_unsupported_platform_or_denied_permission_reports_false(
    monkeypatch: pytest.MonkeyPatch, launched
) -> None:
    monkeypatch.setattr(notifiers, "sys", SimpleNamespace(platform="sunos5"))
    assert await DesktopNotifier().deliver("t", "b") is False

    monkeypatch.setattr(notifiers, "sys", SimpleNamespace(platform="linux"))
    assert await DesktopNotifier(permission_granted=False).deliver("t", "b") is False
    assert launched == []


@pytest.mark.asyncio
async def test_fanout_succeeds_if_any_notifier_delivered() -> None:
    log = LogNotifier()
    fanout = FanoutNotifier(FakeNotifier(explode=True), log)

    assert await fanout.deliver("Reminder Due", "now") is True
    assert [n.title for n in log.sent] == ["Reminder Due"]
    assert await FanoutNotifier(FakeNotifier(granted=False)).deliver("t", "b") is False
