# src/taskminder/core/state.py

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..alarms.apscheduler_alarms import APSchedulerAlarmService
from ..tasks.refresh import RefreshCoordinator
from ..tasks.reminder_engine import ReminderEngine
from ..tasks.task_filter import TaskFilter
from ..tasks.task_store import TaskStore
from .ports import TaskListPresenter


@dataclass(slots=True)
class Session:
    """
    Who is signed in.

    Created after a successful sign-in, passed to whoever needs it, closed on
    sign-out. The scheduling and filtering core never looks at it.
    """

    user_id: str
    opened_at: float = field(default_factory=time.time)
    closed_at: float | None = None

    @property
    def active(self) -> bool:
        return self.closed_at is None

    def close(self) -> None:
        if self.closed_at is None:
            self.closed_at = time.time()


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    task_store: TaskStore
    alarms: APSchedulerAlarmService
    engine: ReminderEngine
    task_filter: TaskFilter
    coordinator: RefreshCoordinator
    presenter: TaskListPresenter

    session: Session | None = None
