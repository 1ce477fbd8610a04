# src/taskminder/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires store, alarm service, engines and coordinator into AppState.
"""

from __future__ import annotations

import logging

from ..alarms.apscheduler_alarms import APSchedulerAlarmService
from ..config import get_settings
from ..core.ports import TaskListPresenter
from ..core.state import AppState, Session
from ..tasks.refresh import RefreshCoordinator
from ..tasks.reminder_engine import ReminderEngine
from ..tasks.task_filter import TaskFilter
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    presenter: TaskListPresenter,
    *,
    settings=None,
    session: Session | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.tasks_db_path)
    alarms = APSchedulerAlarmService(misfire_grace_seconds=settings.alarm_misfire_grace_seconds)
    engine = ReminderEngine(alarms)
    task_filter = TaskFilter(presenter.on_filtered_list_changed)
    coordinator = RefreshCoordinator(store, engine, task_filter)

    return AppState(
        settings=settings,
        task_store=store,
        alarms=alarms,
        engine=engine,
        task_filter=task_filter,
        coordinator=coordinator,
        presenter=presenter,
        session=session,
    )


def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.coordinator.stop()
    except Exception:
        logger.exception("Coordinator stop failed.")

    try:
        state.alarms.shutdown()
    except Exception:
        logger.exception("Alarm scheduler shutdown failed.")

    # TaskStore uses short-lived sqlite connections per call; close() only drops subscriptions.
    state.task_store.close()
