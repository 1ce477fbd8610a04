# src/taskminder/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum, StrEnum


class Category(StrEnum):
    WORK = "work"
    STUDY = "study"
    LIFE = "life"

    @classmethod
    def from_db(cls, raw: str | None) -> Category:
        if not raw:
            return cls.LIFE
        try:
            return cls(raw)
        except ValueError:
            return cls.LIFE


class CategoryFilter(StrEnum):
    """Category selector of the task list view ("all" matches every category)."""

    ALL = "all"
    WORK = "work"
    STUDY = "study"
    LIFE = "life"


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @classmethod
    def from_db(cls, raw: int | None) -> Priority:
        if raw is None:
            return cls.LOW
        try:
            return cls(int(raw))
        except ValueError:
            return cls.LOW


class TaskStatus(IntEnum):
    """
    Task lifecycle status.

    The stored values are kept as-is (0 and 2); there is no in-progress state.
    """

    PENDING = 0
    COMPLETED = 2

    @classmethod
    def from_db(cls, raw: int | None) -> TaskStatus:
        if raw is None:
            return cls.PENDING
        try:
            return cls(int(raw))
        except ValueError:
            return cls.PENDING


REMIND_OFFSETS_MINUTES: tuple[int, ...] = (0, 5, 10, 15, 30, 60)
NO_REMINDER = 0


def to_local_naive(value: datetime | None) -> datetime | None:
    """Task timestamps are naive local time; aware values are converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


@dataclass(slots=True, frozen=True)
class Task:
    title: str
    description: str | None = ""
    category: Category = Category.LIFE
    priority: Priority = Priority.LOW
    start_time: datetime | None = None
    due_time: datetime | None = None
    status: TaskStatus = TaskStatus.PENDING
    remind_offset_minutes: int = NO_REMINDER

    # Assigned by the store on first insert.
    id: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class QueryKind(str, Enum):
    ALL_TASKS = "all_tasks"
    BY_STATUS = "by_status"
    COMPLETED_HISTORY = "completed_history"


@dataclass(slots=True, frozen=True)
class TaskQuery:
    """What a store subscription observes."""

    kind: QueryKind
    status: TaskStatus | None = None

    @classmethod
    def all_tasks(cls) -> TaskQuery:
        return cls(QueryKind.ALL_TASKS)

    @classmethod
    def by_status(cls, status: TaskStatus) -> TaskQuery:
        return cls(QueryKind.BY_STATUS, status)

    @classmethod
    def completed_history(cls) -> TaskQuery:
        return cls(QueryKind.COMPLETED_HISTORY)

    @property
    def is_full_snapshot(self) -> bool:
        return self.kind == QueryKind.ALL_TASKS
