"""Search lifecycle and client-side filtering."""
from __future__ import annotations

import pytest

from nicetable.table_controller.adapters import MemoryQueryParams
from nicetable.table_controller.config import TableConfig
from nicetable.table_controller.controller import TableController
from nicetable.table_controller.events import PageChanged, SearchCleared


@pytest.fixture
def ctl(rows_95) -> TableController:
    qp = MemoryQueryParams("?page=1&size=10")
    return TableController(TableConfig(results_per_page=10, multitable=False), data=rows_95, query_params=qp)


@pytest.mark.parametrize(
    "value, expected",
    [("ab", False), ("abc", True), ("abcd", True), ("   ", False), ("\t\n", False)],
)
def test_validate_for_search(ctl, value, expected) -> None:
    assert ctl.validate_for_search(value) is expected


def test_search_commits_first_page_and_url(ctl) -> None:
    ctl.go_to_page(4)
    pages: list[int] = []
    ctl.on(PageChanged, lambda ev: pages.append(ev.page))

    assert ctl.search("rome") is True

    assert ctl.pagination.search == "rome"
    assert ctl.pagination.page == 1
    assert ctl.query_params.get("search") == "rome"
    assert pages == [1]
    assert ctl.search("rome") is False


def test_short_search_is_ignored(ctl) -> None:
    assert ctl.search("ro") is False
    assert ctl.pagination.search == ""
    assert ctl.filters.get_rule_by_key("search") is None


def test_empty_search_clears(ctl) -> None:
    ctl.search("rome")
    cleared: list[SearchCleared] = []
    ctl.on(SearchCleared, cleared.append)

    assert ctl.search("") is True

    assert ctl.pagination.search == ""
    assert ctl.query_params.get("search") is None
    assert ctl.filters.get_rule_by_key("search") is None
    assert len(cleared) == 1
    assert ctl.search("") is False


def test_search_not_allowed(rows_95) -> None:
    ctl = TableController(TableConfig(allow_search=False), data=rows_95)
    assert ctl.search("rome") is False
    assert ctl.pagination.search == ""


def test_search_properties_guessed_from_first_record(ctl) -> None:
    assert ctl.get_search_properties() == ["id", "name", "city", "score"]


def test_search_properties_without_data() -> None:
    ctl = TableController(TableConfig(url="/api"))
    assert ctl.get_search_properties() is None
    ctl.set_search_filter("rome")
    assert ctl.pagination.search == "rome"
    assert ctl.filters.get_rule_by_key("search") is None


@pytest.mark.asyncio
async def test_columns_can_opt_out_of_search(rows_95) -> None:
    ctl = TableController(TableConfig(columns={"city": {"allow_search": False}}), data=rows_95)
    await ctl.render()
    assert ctl.get_search_properties() == ["id", "name", "score"]

    ctl.search("rome")
    rows = await ctl.get_rows_to_display()
    assert rows == []


@pytest.mark.asyncio
async def test_fixed_mode_filters_and_paginates(ctl) -> None:
    ctl.search("rome")
    rows = await ctl.get_rows_to_display()

    # every fifth person lives in Rome: ids 5, 10, ..., 95
    assert ctl.pagination.total_rows_count == 19
    assert ctl.pagination.total_page_count == 2
    assert [r["id"] for r in rows] == list(range(5, 55, 5))
    assert [r["rowCount"] for r in rows] == list(range(1, 11))

    ctl.go_to_next()
    rows = await ctl.get_rows_to_display()
    assert [r["id"] for r in rows] == list(range(55, 100, 5))


@pytest.mark.asyncio
async def test_explicit_search_properties(rows_95) -> None:
    ctl = TableController(TableConfig(search_properties=("name",), row_count=False), data=rows_95)
    ctl.search("Person 01")
    rows = await ctl.get_rows_to_display()
    assert [r["id"] for r in rows] == list(range(10, 20))


@pytest.mark.asyncio
async def test_search_from_url_is_applied_on_first_display(rows_95) -> None:
    qp = MemoryQueryParams("?search=naples")
    ctl = TableController(TableConfig(multitable=False, row_count=False), data=rows_95, query_params=qp)
    rows = await ctl.get_rows_to_display()
    assert rows and all(r["city"] == "Naples" for r in rows)


@pytest.mark.asyncio
async def test_clear_search_restores_all_rows(ctl) -> None:
    ctl.search("rome")
    await ctl.get_rows_to_display()
    ctl.clear_search()
    await ctl.get_rows_to_display()
    assert ctl.pagination.total_rows_count == 95
