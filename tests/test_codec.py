# tests/test_codec.py

from __future__ import annotations

import pytest

from taskminder.core.errors import InvalidSelection
from taskminder.tasks import codec
from taskminder.tasks.task_models import Category, CategoryFilter, Priority


def test_tables_match_editor_order() -> None:
    assert [codec.category_from_index(i) for i in range(3)] == [
        Category.WORK,
        Category.STUDY,
        Category.LIFE,
    ]
    assert [codec.priority_from_index(i) for i in range(3)] == [
        Priority.LOW,
        Priority.MEDIUM,
        Priority.HIGH,
    ]
    assert [codec.offset_from_index(i) for i in range(6)] == [0, 5, 10, 15, 30, 60]
    assert codec.category_filter_from_index(0) == CategoryFilter.ALL


def test_reverse_lookups() -> None:
    assert codec.category_to_index(Category.STUDY) == 1
    assert codec.priority_to_index(Priority.HIGH) == 2
    assert codec.offset_to_index(30) == 4
    assert codec.category_filter_to_index(CategoryFilter.LIFE) == 3


@pytest.mark.parametrize("index", [-1, 3, 99])
def test_out_of_range_category_is_rejected(index: int) -> None:
    with pytest.raises(InvalidSelection):
        codec.category_from_index(index)


@pytest.mark.parametrize("index", [-1, 6])
def test_out_of_range_offset_is_rejected(index: int) -> None:
    with pytest.raises(InvalidSelection):
        codec.offset_from_index(index)


def test_unknown_values_are_rejected_not_defaulted() -> None:
    with pytest.raises(InvalidSelection):
        codec.offset_to_index(45)
    with pytest.raises(InvalidSelection):
        codec.priority_to_index(7)
    with pytest.raises(InvalidSelection):
        codec.priority_from_index(True)
    with pytest.raises(InvalidSelection):
        codec.offset_to_index(False)


def test_invalid_selection_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="priority"):
        codec.priority_from_index(3)
