# src/taskminder/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ..core.errors import NotFound, ValidationError
from ..core.ports import TaskListPresenter, TaskRepo
from . import codec
from .reminder_engine import ReminderEngine
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskDraft:
    """Raw editor input: text fields, selector positions and picked datetimes."""

    title: str
    description: str = ""
    category_index: int = 2
    priority_index: int = 0
    offset_index: int = 0
    start_time: datetime | None = None
    due_time: datetime | None = None

    @classmethod
    def from_task(cls, task: Task) -> TaskDraft:
        """Pre-fill the editor from a stored task."""
        return cls(
            title=task.title,
            description=task.description or "",
            category_index=codec.category_to_index(task.category),
            priority_index=codec.priority_to_index(task.priority),
            offset_index=codec.offset_to_index(task.remind_offset_minutes),
            start_time=task.start_time,
            due_time=task.due_time,
        )


def build_task(
    draft: TaskDraft,
    *,
    task_id: int | None = None,
    status: TaskStatus = TaskStatus.PENDING,
) -> Task:
    return Task(
        id=task_id,
        title=(draft.title or "").strip(),
        description=(draft.description or "").strip(),
        category=codec.category_from_index(draft.category_index),
        priority=codec.priority_from_index(draft.priority_index),
        start_time=draft.start_time,
        due_time=draft.due_time,
        status=status,
        remind_offset_minutes=codec.offset_from_index(draft.offset_index),
    )


def validate_task(task: Task) -> None:
    if not task.title or not task.title.strip():
        raise ValidationError("Please enter a task title.")
    if task.start_time and task.due_time and task.due_time < task.start_time:
        # Allowed, but almost always a picker mistake.
        logger.warning(
            "Task %r is due (%s) before it starts (%s)", task.title, task.due_time, task.start_time
        )


def save_task(
    store: TaskRepo,
    engine: ReminderEngine,
    presenter: TaskListPresenter,
    draft: TaskDraft,
    *,
    editing_task_id: int | None = None,
) -> int | None:
    """
    Create or replace a task from editor input, then arm its reminder.

    Returns the task id, or None when the draft is rejected (the presenter is
    told why and nothing is written). StoreError, NotFound and InvalidSelection
    propagate; reminders are only touched after the store accepted the write.
    """
    task = build_task(draft, task_id=editing_task_id)
    try:
        validate_task(task)
    except ValidationError as e:
        logger.info("Save rejected: %s", e.reason)
        presenter.on_validation_error(e.reason)
        return None

    if editing_task_id is None:
        task_id = store.insert(task)
        task = replace(task, id=task_id)
        outcome = engine.schedule(task)
        logger.info("Task %s created (reminder: %s)", task_id, outcome.value)
    else:
        # Status is not editable here: keep whatever the stored task has.
        task = replace(task, status=store.get_by_id(editing_task_id).status)
        store.update(task)
        task_id = editing_task_id
        outcome = engine.reschedule(task)
        logger.info("Task %s updated (reminder: %s)", task_id, outcome.value)

    return task_id


async def load_for_edit(store: TaskRepo, task_id: int) -> Task | None:
    """
    Fetch a task for the editor off the event loop.

    The awaiting coroutine resumes on the loop, so the caller can fill editor
    state directly. A missing task aborts the edit: None, nothing written.
    """
    try:
        return await asyncio.to_thread(store.get_by_id, task_id)
    except NotFound:
        logger.info("Edit aborted: task %s not found", task_id)
        return None


def complete_task(store: TaskRepo, engine: ReminderEngine, task_id: int) -> bool:
    """Status-only update to Completed. Returns False if it already was."""
    task = store.get_by_id(task_id)
    if task.is_completed:
        engine.cancel(task_id)
        return False

    store.update(replace(task, status=TaskStatus.COMPLETED))
    engine.cancel(task_id)
    logger.info("Task %s completed", task_id)
    return True
