# tests/test_rollover.py

from __future__ import annotations

from datetime import date, datetime

from taskmaster.tasks.rollover import RolloverManager, RolloverState
from taskmaster.tasks.task_models import TaskHistory
from taskmaster.tasks.task_store import TaskStore

from .fakes import FakeClock


def _seed(store: TaskStore, done: int, open_: int) -> None:
    for i in range(done):
        t = store.add_daily_task(f"done {i}")
        store.toggle_completion(t.id, "daily")
    for i in range(open_):
        store.add_daily_task(f"open {i}")


def test_rollover_snapshots_previous_day_and_resets(store: TaskStore, clock: FakeClock) -> None:
    _seed(store, done=2, open_=1)
    store.set_last_reset_date(date(2024, 5, 15))
    clock.set(datetime(2024, 5, 16, 0, 5))

    manager = RolloverManager(store, clock)
    assert manager.check() is True

    assert store.task_history == (TaskHistory(date="2024-05-15", completed=2, total=3),)
    assert all(not t.completed for t in store.daily_tasks)
    assert all(t.date == date(2024, 5, 16) for t in store.daily_tasks)
    assert store.last_reset_date == "2024-05-16"
    assert manager.state is RolloverState.CURRENT_DAY


def test_rollover_is_idempotent_without_date_change(store: TaskStore, clock: FakeClock) -> None:
    _seed(store, done=1, open_=1)
    store.set_last_reset_date(date(2024, 5, 14))
    manager = RolloverManager(store, clock)

    assert manager.check() is True
    history, daily = store.task_history, store.daily_tasks

    assert manager.check() is False
    assert store.task_history == history
    assert store.daily_tasks == daily


def test_same_day_check_is_a_noop(store: TaskStore, clock: FakeClock) -> None:
    _seed(store, done=1, open_=0)
    manager = RolloverManager(store, clock)

    assert manager.check() is False
    assert store.daily_tasks[0].completed is True
    assert store.task_history == ()


def test_multi_day_gap_takes_one_snapshot_for_last_known_date(store: TaskStore, clock: FakeClock) -> None:
    _seed(store, done=1, open_=2)
    store.set_last_reset_date(date(2024, 5, 12))
    clock.set(datetime(2024, 5, 15, 9, 0))

    assert RolloverManager(store, clock).check() is True

    assert store.task_history == (TaskHistory(date="2024-05-12", completed=1, total=3),)
    assert store.last_reset_date == "2024-05-15"


def test_empty_daily_list_produces_no_history(store: TaskStore, clock: FakeClock) -> None:
    store.set_last_reset_date(date(2024, 5, 14))

    assert RolloverManager(store, clock).check() is True
    assert store.task_history == ()
    assert store.last_reset_date == "2024-05-15"


def test_snapshot_overwrites_existing_entry_for_same_date(store: TaskStore, clock: FakeClock) -> None:
    store.upsert_history(TaskHistory(date="2024-05-14", completed=0, total=9))
    _seed(store, done=2, open_=0)
    store.set_last_reset_date(date(2024, 5, 14))

    RolloverManager(store, clock).check()

    assert store.task_history == (TaskHistory(date="2024-05-14", completed=2, total=2),)


def test_prune_keeps_entries_exactly_seven_days_old(store: TaskStore, clock: FakeClock) -> None:
    store.replace_task_history(
        [
            TaskHistory(date="2024-05-07", completed=1, total=1),  # 8 days old
            TaskHistory(date="2024-05-08", completed=2, total=2),  # exactly 7
            TaskHistory(date="2024-05-14", completed=3, total=4),
        ]
    )

    removed = RolloverManager(store, clock).prune()

    assert removed == 1
    assert [h.date for h in store.task_history] == ["2024-05-08", "2024-05-14"]


def test_rollover_prunes_relative_to_new_day(store: TaskStore, clock: FakeClock) -> None:
    store.replace_task_history([TaskHistory(date="2024-05-08", completed=1, total=1)])
    store.set_last_reset_date(date(2024, 5, 15))
    clock.set(datetime(2024, 5, 16, 8, 0))

    RolloverManager(store, clock).check()

    assert store.task_history == ()
    cutoff = date(2024, 5, 9)
    assert all(date.fromisoformat(h.date) >= cutoff for h in store.task_history)


def test_rollover_state_is_persisted(store: TaskStore, storage, clock: FakeClock) -> None:
    _seed(store, done=1, open_=0)
    store.set_last_reset_date(date(2024, 5, 14))
    RolloverManager(store, clock).check()

    reloaded = TaskStore(storage, clock=clock)
    assert reloaded.last_reset_date == "2024-05-15"
    assert reloaded.task_history == store.task_history
    assert reloaded.daily_tasks[0].completed is False
