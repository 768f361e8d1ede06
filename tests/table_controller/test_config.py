from __future__ import annotations

import pytest

from nicetable.table_controller.config import SearchMode, SortOrder, TableConfig
from nicetable.table_controller.errors import ConfigurationError


def test_defaults() -> None:
    cfg = TableConfig()
    assert cfg.page == 1
    assert cfg.results_per_page == 30
    assert cfg.results_per_page_select == (10, 30, 50, 100)
    assert cfg.min_search_chars == 3
    assert cfg.search_mode is SearchMode.FULL_STRING
    assert cfg.column_default["template"] == "##Name##"


def test_from_options_accepts_known_keys_and_enum_names() -> None:
    cfg = TableConfig.from_options(
        {"url": "/api/items", "results_per_page": 10, "search_mode": "SplitWords", "sort_order": "desc"}
    )
    assert cfg.url == "/api/items"
    assert cfg.search_mode is SearchMode.SPLIT_WORDS
    assert cfg.sort_order is SortOrder.DESC


def test_from_options_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigurationError, match="tools"):
        TableConfig.from_options({"url": "/x", "tools": []})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"page": 0},
        {"results_per_page": 0},
        {"min_search_chars": -1},
        {"analyze_limit": 0},
        {"results_per_page_select": ()},
        {"results_per_page_select": (10, -5)},
        {"search_mode": "Fuzzy"},
    ],
)
def test_invalid_values_raise(kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        TableConfig(**kwargs)
