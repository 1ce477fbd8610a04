# src/taskminder/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.errors import NotFound, StoreError, ValidationError
from ..core.ports import SnapshotCallback
from .task_models import (
    REMIND_OFFSETS_MINUTES,
    Category,
    Priority,
    QueryKind,
    Task,
    TaskQuery,
    TaskStatus,
    to_local_naive,
)

logger = logging.getLogger(__name__)


class StoreSubscription:
    """Live query registered on a TaskStore. close() stops further pushes."""

    def __init__(self, store: TaskStore, query: TaskQuery, callback: SnapshotCallback) -> None:
        self._store = store
        self.query = query
        self.callback = callback
        self.active = True

    def close(self) -> None:
        if self.active:
            self.active = False
            self._store._remove_subscription(self)


class TaskStore:
    """
    SQLite task store with push subscriptions.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - mutations and the pushes they trigger run under one lock, so
      subscribers see snapshots in mutation order
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._subscriptions: list[StoreSubscription] = []
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Drop all subscriptions (no persistent connections to close)."""
        with self._lock:
            for sub in list(self._subscriptions):
                sub.active = False
            self._subscriptions.clear()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _session(self, what: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"{what}: cannot open {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"{what} failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session("schema") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    category TEXT NOT NULL DEFAULT 'life',
                    priority INTEGER NOT NULL DEFAULT 1,
                    start_time TEXT,
                    due_time TEXT,
                    status INTEGER NOT NULL DEFAULT 0,
                    remind_offset_minutes INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("category", "TEXT NOT NULL DEFAULT 'life'")
            add_col("priority", "INTEGER NOT NULL DEFAULT 1")
            add_col("start_time", "TEXT")
            add_col("due_time", "TEXT")
            add_col("status", "INTEGER NOT NULL DEFAULT 0")
            add_col("remind_offset_minutes", "INTEGER NOT NULL DEFAULT 0")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due_time)")

    @staticmethod
    def _dt_to_str(value: datetime | None) -> str | None:
        value = to_local_naive(value)
        return value.isoformat() if value is not None else None

    @staticmethod
    def _str_to_dt(raw: str | None) -> datetime | None:
        if not raw:
            return None
        try:
            return to_local_naive(datetime.fromisoformat(raw))
        except ValueError:
            logger.warning("Unparseable timestamp in tasks table: %r", raw)
            return None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        offset = int(row["remind_offset_minutes"] or 0)
        if offset not in REMIND_OFFSETS_MINUTES:
            logger.warning("Task %s has unknown remind offset %s; treating as none", row["id"], offset)
            offset = 0
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            category=Category.from_db(row["category"]),
            priority=Priority.from_db(row["priority"]),
            start_time=self._str_to_dt(row["start_time"]),
            due_time=self._str_to_dt(row["due_time"]),
            status=TaskStatus.from_db(row["status"]),
            remind_offset_minutes=offset,
        )

    def _task_params(self, task: Task) -> tuple[Any, ...]:
        return (
            task.title.strip(),
            task.description,
            Category(task.category).value,
            int(Priority(task.priority)),
            self._dt_to_str(task.start_time),
            self._dt_to_str(task.due_time),
            int(TaskStatus(task.status)),
            int(task.remind_offset_minutes),
        )

    @staticmethod
    def _check_title(task: Task) -> None:
        if not task.title or not task.title.strip():
            raise ValidationError("title is required")

    # ---- subscriptions ----

    def _remove_subscription(self, sub: StoreSubscription) -> None:
        with self._lock:
            with contextlib.suppress(ValueError):
                self._subscriptions.remove(sub)

    def _push(self, sub: StoreSubscription) -> None:
        if not sub.active:
            return
        tasks = self.list_tasks(sub.query)
        try:
            sub.callback(tasks)
        except Exception:
            logger.exception("Subscriber callback failed query=%s", sub.query.kind.value)

    def _notify_all(self) -> None:
        for sub in list(self._subscriptions):
            self._push(sub)

    def subscribe(self, query: TaskQuery, callback: SnapshotCallback) -> StoreSubscription:
        """Register a live query; the current list is pushed right away."""
        sub = StoreSubscription(self, query, callback)
        with self._lock:
            self._subscriptions.append(sub)
            self._push(sub)
        logger.debug("Subscribed query=%s status=%s", query.kind.value, query.status)
        return sub

    def refresh(self) -> None:
        """Re-push every live query (e.g. after the file was edited elsewhere)."""
        with self._lock:
            self._notify_all()

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._session("count") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def insert(self, task: Task) -> int:
        self._check_title(task)
        now = time.time()
        with self._lock:
            with self._session("insert") as conn:
                cur = conn.execute(
                    """
                    INSERT INTO tasks(
                        title, description, category, priority,
                        start_time, due_time, status, remind_offset_minutes,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*self._task_params(task), now, now),
                )
                rowid = cur.lastrowid
                if rowid is None:
                    raise StoreError("SQLite did not return lastrowid for tasks insert")
                task_id = int(rowid)
            logger.debug(
                "Task inserted id=%s category=%s due=%s offset=%s",
                task_id,
                task.category,
                task.due_time,
                task.remind_offset_minutes,
            )
            self._notify_all()
            return task_id

    def update(self, task: Task) -> None:
        """Whole-record replace; the id is the only field that never changes."""
        if task.id is None:
            raise StoreError("cannot update a task that has no id")
        self._check_title(task)
        with self._lock:
            with self._session("update") as conn:
                cur = conn.execute(
                    """
                    UPDATE tasks
                    SET title = ?, description = ?, category = ?, priority = ?,
                        start_time = ?, due_time = ?, status = ?, remind_offset_minutes = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (*self._task_params(task), time.time(), int(task.id)),
                )
                if cur.rowcount != 1:
                    raise NotFound(int(task.id))
            logger.debug("Task updated id=%s status=%s", task.id, task.status.name)
            self._notify_all()

    def get_by_id(self, task_id: int) -> Task:
        with self._session("get_by_id") as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        if row is None:
            raise NotFound(int(task_id))
        return self._row_to_task(row)

    def list_tasks(self, query: TaskQuery | None = None) -> list[Task]:
        query = query or TaskQuery.all_tasks()

        if query.kind == QueryKind.BY_STATUS:
            if query.status is None:
                raise ValueError("by_status query needs a status")
            sql = (
                "SELECT * FROM tasks WHERE status = ? "
                "ORDER BY due_time IS NULL, due_time ASC, id ASC"
            )
            params: tuple[Any, ...] = (int(query.status),)
        elif query.kind == QueryKind.COMPLETED_HISTORY:
            sql = "SELECT * FROM tasks WHERE status = ? ORDER BY updated_at DESC, id DESC"
            params = (int(TaskStatus.COMPLETED),)
        else:
            sql = "SELECT * FROM tasks ORDER BY id ASC"
            params = ()

        with self._session("list_tasks") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_task(r) for r in rows]
