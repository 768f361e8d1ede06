from __future__ import annotations

import math

import pytest

from nicetable.table_controller.pagination import PaginationState, page_count


@pytest.mark.parametrize(
    "total,per_page,expected",
    [(0, 30, 1), (1, 30, 1), (30, 30, 1), (31, 30, 2), (60, 30, 2), (95, 30, 4), (1000, 7, 143)],
)
def test_page_count(total: int, per_page: int, expected: int) -> None:
    assert page_count(total, per_page) == expected


def test_page_count_is_at_least_one_and_ceil_above_one_page() -> None:
    for per_page in (1, 3, 10, 30):
        for total in range(0, 200):
            n = page_count(total, per_page)
            assert n >= 1
            if total > per_page:
                assert n == math.ceil(total / per_page)


def test_subset_of_last_page_95_rows() -> None:
    rows = list(range(95))
    state = PaginationState(page=4, results_per_page=30, total_rows_count=95)
    assert state.total_page_count == 4
    assert state.subset(rows) == [90, 91, 92, 93, 94]


def test_update_totals_is_idempotent() -> None:
    state = PaginationState(page=3, results_per_page=10)
    state.update_totals(50)
    snapshot = (state.page, state.total_rows_count, state.total_page_count,
                state.first_object_number, state.last_object_number)
    assert state.update_totals(50) is False
    assert (state.page, state.total_rows_count, state.total_page_count,
            state.first_object_number, state.last_object_number) == snapshot


def test_update_totals_resets_page_when_out_of_range() -> None:
    state = PaginationState(page=5, results_per_page=10, total_rows_count=100)
    assert state.update_totals(20) is True
    assert state.page == 1
    assert state.total_page_count == 2
    assert (state.first_object_number, state.last_object_number) == (1, 10)


def test_update_totals_keeps_page_in_range() -> None:
    state = PaginationState(page=2, results_per_page=10, total_rows_count=100)
    assert state.update_totals(50) is False
    assert state.page == 2
    assert (state.first_object_number, state.last_object_number) == (11, 20)


def test_update_totals_rejects_non_int() -> None:
    state = PaginationState()
    with pytest.raises(TypeError):
        state.update_totals("12")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        state.update_totals(True)  # type: ignore[arg-type]


def test_set_results_per_page_recomputes_page_count() -> None:
    state = PaginationState(page=4, results_per_page=10, total_rows_count=40)
    assert state.set_results_per_page(30) is True
    assert state.total_page_count == 2
    assert state.page == 1


def test_is_valid_page() -> None:
    state = PaginationState(page=2, results_per_page=10, total_rows_count=40)
    assert state.is_valid_page(3)
    assert not state.is_valid_page(2)  # current page
    assert not state.is_valid_page(0)
    assert not state.is_valid_page(5)
    assert not state.is_valid_page("3")
