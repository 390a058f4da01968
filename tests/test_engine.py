# tests/test_engine.py

from __future__ import annotations

import asyncio
from datetime import date, datetime

import pytest

from taskmaster.core.state import AppState
from taskmaster.tasks.engine import run_rollover_loop
from taskmaster.tasks.rollover import RolloverManager
from taskmaster.tasks.task_models import TaskHistory

from .fakes import FakeClock, FakeNotifier


@pytest.mark.asyncio
async def test_engine_start_runs_startup_pass_and_stop_cancels_timers(state: AppState) -> None:
    store = state.store
    store.replace_task_history([TaskHistory(date="2024-05-01", completed=1, total=1)])
    task = store.add_daily_task("Run")
    store.toggle_completion(task.id, "daily")
    store.set_last_reset_date(date(2024, 5, 14))

    await state.engine.start()
    try:
        assert state.engine.running
        assert store.last_reset_date == "2024-05-15"
        assert [h.date for h in store.task_history] == ["2024-05-14"]
        assert store.daily_tasks[0].completed is False
    finally:
        await state.engine.stop()

    assert not state.engine.running


@pytest.mark.asyncio
async def test_engine_context_manager_delivers_due_reminders(state: AppState) -> None:
    notifier = state.notifier
    assert isinstance(notifier, FakeNotifier)
    state.store.add_reminder("Standup", date=date(2024, 5, 18), time="10:00")

    async with state.engine:
        await asyncio.sleep(0.05)

    assert notifier.bodies().count('"Standup" is due in 3 days') == 1
    assert "Reminder Set" in notifier.titles()

    sent = len(notifier.sent)
    await asyncio.sleep(0.03)
    assert len(notifier.sent) == sent


@pytest.mark.asyncio
async def test_engine_stop_without_start_is_harmless(state: AppState) -> None:
    await state.engine.stop()
    assert not state.engine.running


@pytest.mark.asyncio
async def test_running_engine_rolls_over_at_midnight(state: AppState, clock: FakeClock) -> None:
    store = state.store
    task = store.add_daily_task("Meditate")
    store.toggle_completion(task.id, "daily")

    async with state.engine:
        await asyncio.sleep(0.03)
        assert store.daily_tasks[0].completed is True

        clock.set(datetime(2024, 5, 16, 0, 1))
        await asyncio.sleep(0.05)

        assert store.last_reset_date == "2024-05-16"
        assert store.daily_tasks[0].completed is False
        assert store.daily_tasks[0].date == date(2024, 5, 16)
        assert [(h.date, h.completed, h.total) for h in store.task_history] == [("2024-05-15", 1, 1)]


@pytest.mark.asyncio
async def test_rollover_loop_checks_until_cancelled(state: AppState, clock: FakeClock) -> None:
    store = state.store
    store.add_daily_task("Stretch")
    loop_task = asyncio.create_task(run_rollover_loop(RolloverManager(store, clock), interval_seconds=0.01))

    clock.set(datetime(2024, 5, 16, 0, 1))
    await asyncio.sleep(0.05)
    assert store.last_reset_date == "2024-05-16"

    loop_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await loop_task
