# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskminder.tasks.reminder_engine import ReminderEngine
from taskminder.tasks.task_store import TaskStore

from .fakes import FakeAlarmService, FakePresenter

# Every engine in the tests lives at this instant.
NOW = datetime(2024, 1, 1, 12, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskminder-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        log_dir=tmp_path,
        alarm_misfire_grace_seconds=5,
        default_view="all",
    )


@pytest.fixture()
def alarms() -> FakeAlarmService:
    return FakeAlarmService()


@pytest.fixture()
def engine(alarms: FakeAlarmService) -> ReminderEngine:
    return ReminderEngine(alarms, clock=lambda: NOW)


@pytest.fixture()
def presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    """Real SQLite store: its behavior is part of what we test."""
    return TaskStore(settings.tasks_db_path)
