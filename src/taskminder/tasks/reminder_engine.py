# src/taskminder/tasks/reminder_engine.py

from __future__ import annotations

"""
Reminder scheduling engine.

Owns the trigger table (task id -> at most one outstanding trigger) and keeps
the alarm service in step with it:
- schedule: register a trigger at due_time - offset (or skip),
- cancel: drop the trigger (idempotent),
- reschedule: cancel, then schedule,
- reconcile_all: bring the table in line with a full task snapshot.

Alarm calls are best-effort: failures are logged and reported through the
returned outcome, the task itself is never touched. The next reconcile heals:
failed sets are retried by reschedule, failed clears are remembered and retried.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from ..core.ports import AlarmService, ReminderPayload
from .task_models import NO_REMINDER, Task

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ScheduleOutcome(str, Enum):
    SCHEDULED = "scheduled"
    SKIPPED_COMPLETED = "skipped_completed"
    SKIPPED_NO_REMINDER = "skipped_no_reminder"
    SKIPPED_NO_DUE_TIME = "skipped_no_due_time"
    SKIPPED_STALE = "skipped_stale"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ReminderHandle:
    task_id: int
    trigger_time: datetime


def trigger_time_for(task: Task) -> datetime | None:
    if task.due_time is None:
        return None
    return task.due_time - timedelta(minutes=int(task.remind_offset_minutes))


def _require_id(task: Task) -> int:
    if task.id is None:
        raise ValueError("task must be persisted (have an id) before scheduling")
    return int(task.id)


class ReminderEngine:
    def __init__(self, alarms: AlarmService, *, clock: Clock | None = None) -> None:
        self._alarms = alarms
        self._clock: Clock = clock or datetime.now
        self._handles: dict[int, ReminderHandle] = {}
        # Ids whose clear_trigger failed; the alarm may still be live.
        self._pending_clears: set[int] = set()
        # Serializes every table mutation; reschedule/reconcile re-enter it.
        self._lock = threading.RLock()

    # ---- inspection ----

    def _drop_fired(self) -> None:
        now = self._clock()
        for task_id in [i for i, h in self._handles.items() if h.trigger_time <= now]:
            # The alarm service already consumed a fired one-shot trigger.
            del self._handles[task_id]

    def handle_for(self, task_id: int) -> ReminderHandle | None:
        with self._lock:
            self._drop_fired()
            return self._handles.get(int(task_id))

    def handles(self) -> list[ReminderHandle]:
        with self._lock:
            self._drop_fired()
            return sorted(self._handles.values(), key=lambda h: (h.trigger_time, h.task_id))

    def pending_clears(self) -> set[int]:
        with self._lock:
            return set(self._pending_clears)

    # ---- operations ----

    def schedule(self, task: Task) -> ScheduleOutcome:
        task_id = _require_id(task)

        with self._lock:
            # An armed trigger is never updated in place: it goes away first.
            self.cancel(task_id)

            if task.is_completed:
                return ScheduleOutcome.SKIPPED_COMPLETED

            if task.remind_offset_minutes == NO_REMINDER:
                return ScheduleOutcome.SKIPPED_NO_REMINDER

            trigger_at = trigger_time_for(task)
            if trigger_at is None:
                return ScheduleOutcome.SKIPPED_NO_DUE_TIME

            if trigger_at <= self._clock():
                # Stale: dropped quietly, never fired late.
                logger.debug("Reminder skipped (stale) task_id=%s trigger=%s", task_id, trigger_at)
                return ScheduleOutcome.SKIPPED_STALE

            payload = ReminderPayload(
                task_id=task_id,
                title=task.title,
                description=task.description or "",
                due_time=task.due_time,
                trigger_time=trigger_at,
            )
            try:
                self._alarms.set_trigger(task_id, trigger_at, payload)
            except Exception:
                logger.exception("set_trigger failed task_id=%s trigger=%s", task_id, trigger_at)
                return ScheduleOutcome.FAILED

            # set_trigger replaced whatever trigger the failed clear left behind.
            self._pending_clears.discard(task_id)
            self._handles[task_id] = ReminderHandle(task_id=task_id, trigger_time=trigger_at)
            logger.debug("Reminder scheduled task_id=%s trigger=%s", task_id, trigger_at)
            return ScheduleOutcome.SCHEDULED

    def cancel(self, task_id: int) -> bool:
        """
        Drop any outstanding trigger for task_id.

        Returns False when the alarm service failed to clear it. The id is then
        remembered and the clear is retried by the next cancel of that id (and
        so by the next reconcile that sees it).
        """
        task_id = int(task_id)
        with self._lock:
            had_handle = self._handles.pop(task_id, None) is not None
            if not had_handle and task_id not in self._pending_clears:
                return True
            try:
                self._alarms.clear_trigger(task_id)
            except Exception:
                logger.exception("clear_trigger failed task_id=%s", task_id)
                self._pending_clears.add(task_id)
                return False
            self._pending_clears.discard(task_id)
            logger.debug("Reminder canceled task_id=%s", task_id)
            return True

    def reschedule(self, task: Task) -> ScheduleOutcome:
        task_id = _require_id(task)
        with self._lock:
            self.cancel(task_id)
            return self.schedule(task)

    def reconcile_all(self, tasks: Iterable[Task], *, prune: bool = False) -> dict[int, ScheduleOutcome]:
        """
        Reconcile the trigger table with a task snapshot.

        Completed tasks are canceled, every other task is rescheduled. Each id
        is handled once per call (the last occurrence wins if a snapshot repeats
        an id). A task that raises is logged and reported as FAILED; the rest
        of the snapshot is still processed. With prune=True the snapshot is
        treated as the complete task list and triggers for ids missing from it
        are canceled too.
        """
        latest: dict[int, Task] = {}
        for task in tasks:
            if task.id is None:
                logger.warning("reconcile_all: ignoring unsaved task title=%r", task.title)
                continue
            latest[int(task.id)] = task

        outcomes: dict[int, ScheduleOutcome] = {}
        with self._lock:
            for task_id, task in latest.items():
                try:
                    if task.is_completed:
                        self.cancel(task_id)
                        outcomes[task_id] = ScheduleOutcome.SKIPPED_COMPLETED
                    else:
                        outcomes[task_id] = self.reschedule(task)
                except Exception:
                    logger.exception("reconcile failed task_id=%s", task_id)
                    outcomes[task_id] = ScheduleOutcome.FAILED

            if prune:
                gone = (set(self._handles) | self._pending_clears) - set(latest)
                for task_id in sorted(gone):
                    self.cancel(task_id)

            armed = len(self._handles)

        logger.info("Reconciled %d task(s), %d reminder(s) armed", len(latest), armed)
        return outcomes
