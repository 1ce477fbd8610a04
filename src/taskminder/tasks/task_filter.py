# src/taskminder/tasks/task_filter.py

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from .task_models import CategoryFilter, Task

logger = logging.getLogger(__name__)

FilteredListListener = Callable[[list[Task]], None]


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle in haystack


def matches(task: Task, category_filter: CategoryFilter, search_text: str) -> bool:
    if category_filter != CategoryFilter.ALL and task.category.value != category_filter.value:
        return False
    if not search_text:
        return True
    return _contains(task.title, search_text) or _contains(task.description, search_text)


class TaskFilter:
    """
    Category + free-text view over the last full task list.

    Each recomputation starts from the full list, never from the previous
    result, so setters can be called on every keystroke. Matching is a
    case-sensitive substring test; input order is preserved.
    """

    def __init__(self, listener: FilteredListListener | None = None) -> None:
        self._listener = listener
        self._category_filter = CategoryFilter.ALL
        self._search_text = ""
        self._full_list: list[Task] = []
        self._visible: list[Task] = []

    @property
    def category_filter(self) -> CategoryFilter:
        return self._category_filter

    @property
    def search_text(self) -> str:
        return self._search_text

    @property
    def visible(self) -> list[Task]:
        return list(self._visible)

    def set_category_filter(self, value: CategoryFilter) -> list[Task]:
        self._category_filter = CategoryFilter(value)
        return self.apply(self._full_list)

    def set_search_text(self, value: str | None) -> list[Task]:
        # Surrounding whitespace from the search box is not part of the keyword.
        self._search_text = (value or "").strip()
        return self.apply(self._full_list)

    def apply(self, full_list: Sequence[Task] | None) -> list[Task]:
        self._full_list = list(full_list or [])
        self._visible = [
            t for t in self._full_list if matches(t, self._category_filter, self._search_text)
        ]
        logger.debug(
            "Filter applied category=%s search=%r -> %d/%d",
            self._category_filter.value,
            self._search_text,
            len(self._visible),
            len(self._full_list),
        )
        if self._listener is not None:
            self._listener(list(self._visible))
        return list(self._visible)
