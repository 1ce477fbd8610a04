# src/taskminder/tasks/codec.py

"""
Selector codec.

Editor controls hand us positional indices (radio groups, spinners); the store
and the engines work with domain values. Each mapping is one table read in
both directions. Anything outside a table raises InvalidSelection: there is
no silent fallback to a default.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from ..core.errors import InvalidSelection
from .task_models import REMIND_OFFSETS_MINUTES, Category, CategoryFilter, Priority

T = TypeVar("T")

CATEGORY_TABLE: tuple[Category, ...] = (Category.WORK, Category.STUDY, Category.LIFE)
PRIORITY_TABLE: tuple[Priority, ...] = (Priority.LOW, Priority.MEDIUM, Priority.HIGH)
OFFSET_TABLE: tuple[int, ...] = REMIND_OFFSETS_MINUTES
CATEGORY_FILTER_TABLE: tuple[CategoryFilter, ...] = (
    CategoryFilter.ALL,
    CategoryFilter.WORK,
    CategoryFilter.STUDY,
    CategoryFilter.LIFE,
)


def _from_index(table: Sequence[T], index: int, field: str) -> T:
    # bool is an int subclass; a checkbox state is never a valid selector.
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidSelection(field, index)
    if not 0 <= index < len(table):
        raise InvalidSelection(field, index)
    return table[index]


def _to_index(table: Sequence[T], value: T, field: str) -> int:
    if not isinstance(value, bool):
        for i, item in enumerate(table):
            if item == value:
                return i
    raise InvalidSelection(field, value)


def category_from_index(index: int) -> Category:
    return _from_index(CATEGORY_TABLE, index, "category")


def category_to_index(category: Category) -> int:
    return _to_index(CATEGORY_TABLE, category, "category")


def priority_from_index(index: int) -> Priority:
    return _from_index(PRIORITY_TABLE, index, "priority")


def priority_to_index(priority: Priority) -> int:
    return _to_index(PRIORITY_TABLE, priority, "priority")


def offset_from_index(index: int) -> int:
    return _from_index(OFFSET_TABLE, index, "remind offset")


def offset_to_index(minutes: int) -> int:
    return _to_index(OFFSET_TABLE, minutes, "remind offset")


def category_filter_from_index(index: int) -> CategoryFilter:
    return _from_index(CATEGORY_FILTER_TABLE, index, "category filter")


def category_filter_to_index(value: CategoryFilter) -> int:
    return _to_index(CATEGORY_FILTER_TABLE, value, "category filter")
