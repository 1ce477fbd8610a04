# src/taskminder/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/alarm/presentation collaborators swappable and makes testing easier.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ..tasks.task_models import Task, TaskQuery

SnapshotCallback = Callable[[list[Task]], None]


@dataclass(slots=True, frozen=True)
class ReminderPayload:
    """What the alarm service hands back to the notifier when a trigger fires."""

    task_id: int
    title: str
    description: str
    due_time: datetime | None
    trigger_time: datetime


class Subscription(Protocol):
    def close(self) -> None: ...


class TaskRepo(Protocol):
    """
    Consumer-side contract against the persistent task store.

    Every mutation is a whole-record replace. After a successful mutation the
    store pushes fresh lists to every live subscription, in mutation order.
    """

    def insert(self, task: Task) -> int: ...
    def update(self, task: Task) -> None: ...
    def get_by_id(self, task_id: int) -> Task: ...
    def subscribe(self, query: TaskQuery, callback: SnapshotCallback) -> Subscription: ...


class AlarmService(Protocol):
    """
    Notification/alarm side.

    - set_trigger overwrites any trigger already registered for task_id
    - clear_trigger is a no-op when nothing is registered
    """

    def set_trigger(self, task_id: int, at: datetime, payload: ReminderPayload) -> None: ...
    def clear_trigger(self, task_id: int) -> None: ...


class TaskListPresenter(Protocol):
    def on_filtered_list_changed(self, tasks: list[Task]) -> None: ...
    def on_validation_error(self, reason: str) -> None: ...
