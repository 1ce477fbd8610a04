# tests/test_reminder_engine.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskminder.tasks.reminder_engine import ReminderEngine, ScheduleOutcome, trigger_time_for
from taskminder.tasks.task_models import Category, Priority, Task, TaskStatus

from .conftest import NOW
from .fakes import FakeAlarmService


def make_task(task_id: int | None = 5, **kw) -> Task:
    fields = dict(
        id=task_id,
        title="Write report",
        category=Category.WORK,
        priority=Priority.HIGH,
        due_time=datetime(2024, 1, 10, 9, 0),
        remind_offset_minutes=30,
    )
    fields.update(kw)
    return Task(**fields)


def test_schedule_arms_trigger_at_due_minus_offset(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    task = make_task()
    assert task.status == TaskStatus.PENDING

    assert engine.schedule(task) == ScheduleOutcome.SCHEDULED

    handle = engine.handle_for(5)
    assert handle is not None
    assert handle.trigger_time == datetime(2024, 1, 10, 8, 30)
    assert alarms.armed == {5: datetime(2024, 1, 10, 8, 30)}
    assert alarms.payloads[-1].title == "Write report"


def test_reschedule_clears_before_setting(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task())
    alarms.calls.clear()

    moved = make_task(due_time=datetime(2024, 1, 12, 10, 0))
    assert engine.reschedule(moved) == ScheduleOutcome.SCHEDULED

    assert alarms.calls == [("clear", 5), ("set", 5)]
    assert alarms.armed == {5: datetime(2024, 1, 12, 9, 30)}
    assert engine.handle_for(5).trigger_time == datetime(2024, 1, 12, 9, 30)


def test_repeated_schedule_never_stacks(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    for hours in range(1, 6):
        task = make_task(due_time=NOW + timedelta(hours=hours))
        if hours % 2:
            engine.schedule(task)
        else:
            engine.reschedule(task)
        assert len(engine.handles()) == 1
        assert list(alarms.armed) == [5]

    # Each set is preceded by a clear of the previous trigger (except the first).
    sets = [i for i, c in enumerate(alarms.calls) if c[0] == "set"]
    for i in sets[1:]:
        assert alarms.calls[i - 1] == ("clear", 5)


def test_stale_trigger_is_skipped_quietly(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    # 12:20 due with 30 minutes offset -> 11:50, already past at NOW (12:00).
    task = make_task(due_time=NOW + timedelta(minutes=20))
    assert engine.schedule(task) == ScheduleOutcome.SKIPPED_STALE
    assert engine.handle_for(5) is None
    assert alarms.armed == {}


def test_trigger_exactly_now_counts_as_stale(engine: ReminderEngine) -> None:
    task = make_task(due_time=NOW + timedelta(minutes=30))
    assert engine.schedule(task) == ScheduleOutcome.SKIPPED_STALE


def test_stale_reschedule_drops_existing_trigger(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task())
    assert engine.reschedule(make_task(due_time=NOW - timedelta(days=1))) == ScheduleOutcome.SKIPPED_STALE
    assert engine.handle_for(5) is None
    assert alarms.armed == {}


def test_zero_offset_means_no_reminder(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task())
    assert engine.schedule(make_task(remind_offset_minutes=0)) == ScheduleOutcome.SKIPPED_NO_REMINDER
    assert engine.handle_for(5) is None
    assert alarms.armed == {}


def test_missing_due_time_is_skipped(engine: ReminderEngine) -> None:
    assert engine.schedule(make_task(due_time=None)) == ScheduleOutcome.SKIPPED_NO_DUE_TIME
    assert engine.handles() == []


def test_completed_task_cancels_on_schedule(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task())
    outcome = engine.schedule(make_task(status=TaskStatus.COMPLETED))
    assert outcome == ScheduleOutcome.SKIPPED_COMPLETED
    assert alarms.armed == {}


def test_cancel_is_idempotent(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task())
    assert engine.cancel(5) is True
    calls_after_first = list(alarms.calls)
    assert engine.cancel(5) is True
    assert engine.handles() == []
    assert alarms.calls == calls_after_first
    assert engine.cancel(999) is True


def test_unsaved_task_cannot_be_scheduled(engine: ReminderEngine) -> None:
    with pytest.raises(ValueError):
        engine.schedule(make_task(task_id=None))


def test_alarm_failure_is_reported_not_raised(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    alarms.fail_set = True
    assert engine.schedule(make_task()) == ScheduleOutcome.FAILED
    assert engine.handle_for(5) is None

    # Next reconcile heals once the service is back.
    alarms.fail_set = False
    assert engine.reconcile_all([make_task()]) == {5: ScheduleOutcome.SCHEDULED}
    assert 5 in alarms.armed


def test_failed_clear_is_retried_until_it_succeeds(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task(task_id=7))
    assert engine.handle_for(7) is not None
    alarms.fail_clear = True
    assert engine.cancel(7) is False
    assert engine.handle_for(7) is None
    assert engine.pending_clears() == {7}

    done = [make_task(task_id=7, status=TaskStatus.COMPLETED)]
    engine.reconcile_all(done)
    assert 7 in alarms.armed

    alarms.fail_clear = False
    engine.reconcile_all(done)
    assert alarms.armed == {}
    assert engine.pending_clears() == set()
    assert alarms.calls.count(("clear", 7)) == 3


def test_reschedule_after_failed_clear_replaces_the_trigger(
    engine: ReminderEngine, alarms: FakeAlarmService
) -> None:
    engine.schedule(make_task())
    alarms.fail_clear = True
    assert engine.reschedule(make_task(due_time=datetime(2024, 1, 12, 10, 0))) == ScheduleOutcome.SCHEDULED
    assert alarms.armed == {5: datetime(2024, 1, 12, 9, 30)}
    assert engine.pending_clears() == set()


def test_prune_retries_clear_for_vanished_task(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    engine.schedule(make_task(task_id=3))
    alarms.fail_clear = True
    engine.cancel(3)

    alarms.fail_clear = False
    engine.reconcile_all([], prune=True)
    assert alarms.armed == {}
    assert engine.pending_clears() == set()


def test_one_bad_task_does_not_stop_reconcile(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    aware = make_task(task_id=1, due_time=datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc))
    fine = make_task(task_id=2, due_time=NOW + timedelta(days=1))

    outcomes = engine.reconcile_all([aware, fine])

    assert outcomes == {1: ScheduleOutcome.FAILED, 2: ScheduleOutcome.SCHEDULED}
    assert list(alarms.armed) == [2]


def test_fired_handles_are_dropped() -> None:
    now = [NOW]
    alarms = FakeAlarmService()
    engine = ReminderEngine(alarms, clock=lambda: now[0])
    engine.schedule(make_task(task_id=1, due_time=NOW + timedelta(hours=1)))
    engine.schedule(make_task(task_id=2, due_time=NOW + timedelta(days=1)))

    now[0] = NOW + timedelta(minutes=45)

    assert [h.task_id for h in engine.handles()] == [2]
    assert engine.handle_for(1) is None


def test_reconcile_completion_cancels_and_stays_cancelled(
    engine: ReminderEngine, alarms: FakeAlarmService
) -> None:
    engine.schedule(make_task(task_id=7))
    snapshot = [make_task(task_id=7, status=TaskStatus.COMPLETED)]

    engine.reconcile_all(snapshot)
    assert engine.handle_for(7) is None
    assert 7 not in alarms.armed

    engine.reconcile_all(snapshot)
    assert engine.handle_for(7) is None
    assert not [c for c in alarms.calls if c == ("set", 7)][1:]


def test_reconcile_is_idempotent(engine: ReminderEngine, alarms: FakeAlarmService) -> None:
    snapshot = [
        make_task(task_id=1, due_time=NOW + timedelta(days=1)),
        make_task(task_id=2, due_time=NOW + timedelta(days=2), status=TaskStatus.COMPLETED),
        make_task(task_id=3, due_time=NOW - timedelta(days=1)),
        make_task(task_id=4, due_time=NOW + timedelta(days=3), remind_offset_minutes=0),
    ]

    first = engine.reconcile_all(snapshot)
    state_after_first = dict(alarms.armed)
    second = engine.reconcile_all(snapshot)

    assert first == second == {
        1: ScheduleOutcome.SCHEDULED,
        2: ScheduleOutcome.SKIPPED_COMPLETED,
        3: ScheduleOutcome.SKIPPED_STALE,
        4: ScheduleOutcome.SKIPPED_NO_REMINDER,
    }
    assert alarms.armed == state_after_first == {1: NOW + timedelta(days=1, minutes=-30)}
    assert [h.task_id for h in engine.handles()] == [1]


def test_reconcile_prune_drops_tasks_missing_from_full_snapshot(
    engine: ReminderEngine, alarms: FakeAlarmService
) -> None:
    engine.schedule(make_task(task_id=1))
    engine.schedule(make_task(task_id=2))

    engine.reconcile_all([make_task(task_id=1)])
    assert sorted(alarms.armed) == [1, 2]

    engine.reconcile_all([make_task(task_id=1)], prune=True)
    assert sorted(alarms.armed) == [1]


def test_trigger_time_for() -> None:
    assert trigger_time_for(make_task(remind_offset_minutes=60)) == datetime(2024, 1, 10, 8, 0)
    assert trigger_time_for(make_task(due_time=None)) is None
