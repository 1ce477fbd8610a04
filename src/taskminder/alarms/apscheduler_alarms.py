# src/taskminder/alarms/apscheduler_alarms.py

"""
Alarm service backed by APScheduler.

One DateTrigger job per task, keyed "reminder:<task_id>", so re-arming a task
replaces its job instead of stacking a second one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from ..core.errors import AlarmError
from ..core.ports import ReminderPayload

logger = logging.getLogger(__name__)

Notifier = Callable[[ReminderPayload], None]


def log_notifier(payload: ReminderPayload) -> None:
    due = payload.due_time.strftime("%Y-%m-%d %H:%M") if payload.due_time else "-"
    logger.info("Reminder: task %s %r is due at %s", payload.task_id, payload.title, due)


def job_id_for(task_id: int) -> str:
    return f"reminder:{int(task_id)}"


class APSchedulerAlarmService:
    def __init__(
        self,
        *,
        notifier: Notifier | None = None,
        misfire_grace_seconds: int = 60,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._notifier = notifier or log_notifier
        self._misfire_grace_seconds = int(misfire_grace_seconds)
        self._scheduler = scheduler or BackgroundScheduler()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("Alarm scheduler already running")
            return
        self._scheduler.start()
        logger.info("Alarm scheduler started")

    def shutdown(self) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=False)
        logger.info("Alarm scheduler stopped")

    def _fire(self, payload: ReminderPayload) -> None:
        try:
            self._notifier(payload)
        except Exception:
            logger.exception("Notifier failed task_id=%s", payload.task_id)

    def set_trigger(self, task_id: int, at: datetime, payload: ReminderPayload) -> None:
        try:
            self._scheduler.add_job(
                self._fire,
                trigger=DateTrigger(run_date=at),
                args=[payload],
                id=job_id_for(task_id),
                name=f"Reminder for task {task_id}",
                replace_existing=True,
                misfire_grace_time=self._misfire_grace_seconds,
            )
        except Exception as e:
            raise AlarmError(f"cannot set trigger for task {task_id}: {e}") from e

    def clear_trigger(self, task_id: int) -> None:
        try:
            self._scheduler.remove_job(job_id_for(task_id))
        except JobLookupError:
            return
        except Exception as e:
            raise AlarmError(f"cannot clear trigger for task {task_id}: {e}") from e

    def pending(self) -> dict[int, datetime]:
        """task id -> next fire time, for diagnostics."""
        out: dict[int, datetime] = {}
        for job in self._scheduler.get_jobs():
            if not job.id.startswith("reminder:"):
                continue
            run_at = getattr(job, "next_run_time", None) or job.trigger.run_date
            out[int(job.id.split(":", 1)[1])] = run_at
        return out
