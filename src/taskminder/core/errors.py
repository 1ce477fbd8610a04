# src/taskminder/core/errors.py

from __future__ import annotations


class TaskminderError(Exception):
    """Base class for all errors raised by the core."""


class ValidationError(TaskminderError):
    """A task was rejected before reaching the store (e.g. empty title)."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFound(TaskminderError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class StoreError(TaskminderError):
    """Underlying persistence failure (insert/update/query)."""


class InvalidSelection(TaskminderError, ValueError):
    """A selector index or value outside its fixed table."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"invalid {field} selection: {value!r}")
        self.field = field
        self.value = value


class AlarmError(TaskminderError):
    """The notification/alarm service failed to set or clear a trigger."""
