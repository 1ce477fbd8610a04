# src/taskminder/tasks/refresh.py

from __future__ import annotations

"""
Refresh coordinator.

Bridges store pushes to the two engines:
- the filter gets the new list and recomputes the visible subset,
- the reminder engine reconciles its triggers against the same list.

Store callbacks may arrive on any thread. They are handed to the event loop
and processed one snapshot at a time, in arrival order, by run(). Filter
setters are expected to be called on the loop as well.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..core.ports import Subscription, TaskRepo
from .reminder_engine import ReminderEngine
from .task_filter import TaskFilter
from .task_models import CategoryFilter, Task, TaskQuery

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _Snapshot:
    generation: int
    tasks: list[Task]
    full: bool
    # False for the background all-tasks stream kept while a scoped view is shown.
    for_view: bool


class RefreshCoordinator:
    def __init__(self, store: TaskRepo, engine: ReminderEngine, task_filter: TaskFilter) -> None:
        self._store = store
        self._engine = engine
        self._filter = task_filter
        self._queue: asyncio.Queue[_Snapshot] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._query: TaskQuery | None = None
        self._generation = 0
        self._view_sub: Subscription | None = None
        self._reminder_sub: Subscription | None = None
        self.refreshes = 0

    @property
    def query(self) -> TaskQuery | None:
        return self._query

    # ---- subscriptions ----

    def _post(self, snapshot: _Snapshot) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("Snapshot dropped: coordinator is not attached to a loop")
            return
        loop.call_soon_threadsafe(self._queue.put_nowait, snapshot)

    def _close_subscriptions(self) -> None:
        for sub in (self._view_sub, self._reminder_sub):
            if sub is not None:
                sub.close()
        self._view_sub = None
        self._reminder_sub = None

    def show(self, query: TaskQuery) -> None:
        """
        Replace the observed query.

        Must be called from the event loop. Snapshots of the previous query that
        are still queued are discarded.
        """
        self._loop = asyncio.get_running_loop()
        self._close_subscriptions()
        self._generation += 1
        generation = self._generation
        self._query = query
        full = query.is_full_snapshot

        def on_view(tasks: list[Task]) -> None:
            self._post(_Snapshot(generation, tasks, full=full, for_view=True))

        def on_all(tasks: list[Task]) -> None:
            self._post(_Snapshot(generation, tasks, full=True, for_view=False))

        self._view_sub = self._store.subscribe(query, on_view)
        if not full:
            # A scoped view never lists every task; reminders still follow all of them.
            self._reminder_sub = self._store.subscribe(TaskQuery.all_tasks(), on_all)

        logger.info("Observing query=%s status=%s", query.kind.value, query.status)

    def stop(self) -> None:
        self._close_subscriptions()
        self._generation += 1

    # ---- processing ----

    def handle_snapshot(self, tasks: list[Task], *, full: bool = True, for_view: bool = True) -> None:
        """Apply one snapshot to both engines. Neither step uses the other's result."""
        if for_view:
            self._filter.apply(tasks)
        self._engine.reconcile_all(tasks, prune=full)
        self.refreshes += 1

    async def run(self) -> None:
        """Process queued snapshots forever. Cancel the task to stop."""
        self._loop = asyncio.get_running_loop()
        while True:
            snapshot = await self._queue.get()
            try:
                if snapshot.generation != self._generation:
                    logger.debug("Discarding superseded snapshot gen=%s", snapshot.generation)
                    continue
                self.handle_snapshot(snapshot.tasks, full=snapshot.full, for_view=snapshot.for_view)
            except Exception:
                logger.exception("Refresh failed (gen=%s)", snapshot.generation)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every snapshot posted so far has been processed."""
        # Posts go through call_soon_threadsafe; let pending ones land first.
        await asyncio.sleep(0)
        await self._queue.join()

    # ---- filter criteria (no reminder work) ----

    def set_category_filter(self, value: CategoryFilter) -> list[Task]:
        return self._filter.set_category_filter(value)

    def set_search_text(self, value: str | None) -> list[Task]:
        return self._filter.set_search_text(value)
