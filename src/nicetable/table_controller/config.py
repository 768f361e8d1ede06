# src/nicetable/table_controller/config.py
"""Declarative configuration for a TableController.

``TableConfig`` is immutable: the controller derives per-instance variants
(namespaced query-string keys) with :func:`dataclasses.replace` and keeps
all mutable state in :class:`~nicetable.table_controller.pagination.PaginationState`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional, Union

from nicetable.table_controller.errors import ConfigurationError


class SearchMode(Enum):
    """How a search string is turned into a match pattern."""
    FULL_STRING = "FullString"
    SPLIT_WORDS = "SplitWords"
    SPLIT_SENTENCES = "SplitSentences"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


# Explicit column overrides: {field_name: display_name | attrs} or [attrs-with-"name", ...]
ColumnOverrides = Union[Mapping[str, Union[str, Mapping[str, Any]]], Sequence[Union[str, Mapping[str, Any]]]]


def default_column_attributes() -> dict[str, Any]:
    """Attributes every column starts from before type/name defaults are layered on."""
    return {
        "name": "",
        "type": "Text",
        "groupable": True,
        "sortable": True,
        "resizable": True,
        "allow_search": True,
        "template": "##Name##",
        "order": "",
        "secret": False,
        "hidden": False,
    }


@dataclass(frozen=True)
class TableConfig:
    """Configuration of a single tabular data controller.

    Attributes:
        row_count: Number displayed rows (adds a 1-based ``rowCount`` key).
        allow_search: Whether searching is allowed at all.
        min_search_chars: Minimum length of a value to trigger a search.
        search_delay: Debounce delay in milliseconds for typed searches.
        use_query_string: Mirror page/size/search into URL query parameters.
        use_local_storage: Persist the page size in the key-value store.
        search_query_string: URL key for the search value.
        page_query_string: URL key for the page number.
        results_per_page_query_string: URL key for the page size.
        results_per_page_storage_key: Storage key for the page size.
        page: Initial 1-based page.
        results_per_page: Initial page size.
        results_per_page_select: Allowed page sizes, in display order.
        pagination_enabled: When False the whole filtered collection is displayed.
        analyze_limit: Number of sample records used for schema inference.
        search_mode: How search strings become match patterns.
        fixed: The whole collection is held client side.
        column_default: Attributes shared by every column.
        columns: Optional explicit column overrides.
        url: Fetch endpoint; required unless local data is supplied.
        search: Initial search value.
        order_by: Initial sort field.
        sort_order: Initial sort direction.
        search_properties: Explicit searchable fields (otherwise guessed).
        id_property: Explicit id field (otherwise guessed from column names).
        multitable: Suffix URL keys per table so several tables can share
            one URL. The suffix is ``table_id`` when set, otherwise the
            table's creation order on its query-parameter adapter
            (``c1``, ``c2``, ...), which is the same on every page load.
        table_id: Stable URL key suffix for this table.
        post_data: Extra payload merged into every fetch request.
    """

    row_count: bool = True
    allow_search: bool = True
    min_search_chars: int = 3
    search_delay: int = 50
    use_query_string: bool = True
    use_local_storage: bool = True
    search_query_string: str = "search"
    page_query_string: str = "page"
    results_per_page_query_string: str = "size"
    results_per_page_storage_key: str = "kt-results-per-page"
    page: int = 1
    results_per_page: int = 30
    results_per_page_select: tuple[int, ...] = (10, 30, 50, 100)
    pagination_enabled: bool = True
    analyze_limit: int = 1
    search_mode: SearchMode = SearchMode.FULL_STRING
    fixed: bool = False
    column_default: Mapping[str, Any] = field(default_factory=default_column_attributes)
    columns: Optional[ColumnOverrides] = None
    url: Optional[str] = None

    search: str = ""
    order_by: str = ""
    sort_order: Optional[SortOrder] = None
    search_properties: Optional[tuple[str, ...]] = None
    id_property: Optional[str] = None
    multitable: bool = True
    table_id: Optional[str] = None
    post_data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # frozen: normalize through object.__setattr__
        if isinstance(self.search_mode, str):
            object.__setattr__(self, "search_mode", _parse_enum(SearchMode, self.search_mode, "search_mode"))
        if isinstance(self.sort_order, str):
            object.__setattr__(self, "sort_order", _parse_enum(SortOrder, self.sort_order, "sort_order"))
        object.__setattr__(self, "results_per_page_select", tuple(self.results_per_page_select))
        if self.search_properties is not None:
            object.__setattr__(self, "search_properties", tuple(self.search_properties))

        if not _is_int(self.page) or self.page < 1:
            raise ConfigurationError(f"page must be an integer >= 1, got {self.page!r}")
        if not _is_int(self.results_per_page) or self.results_per_page <= 0:
            raise ConfigurationError(f"results_per_page must be an integer > 0, got {self.results_per_page!r}")
        if not _is_int(self.min_search_chars) or self.min_search_chars < 0:
            raise ConfigurationError(f"min_search_chars must be an integer >= 0, got {self.min_search_chars!r}")
        if not _is_int(self.analyze_limit) or self.analyze_limit < 1:
            raise ConfigurationError(f"analyze_limit must be an integer >= 1, got {self.analyze_limit!r}")
        if not self.results_per_page_select or any(
            not _is_int(v) or v <= 0 for v in self.results_per_page_select
        ):
            raise ConfigurationError(
                f"results_per_page_select must hold positive integers, got {self.results_per_page_select!r}"
            )

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "TableConfig":
        """Build a config from a caller option bag.

        Unknown keys are rejected; extra request payload belongs in ``post_data``.

        Raises:
            ConfigurationError: If an option is not recognized or invalid.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unrecognized table option(s): {', '.join(unknown)}")
        return cls(**dict(options))

    def is_allowed_page_size(self, size: int) -> bool:
        return size in self.results_per_page_select


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_enum(enum_cls: type[Enum], value: str, option: str) -> Any:
    for member in enum_cls:
        if value == member.value or value.upper() == member.name:
            return member
    raise ConfigurationError(f"{option}: unknown value {value!r}")
