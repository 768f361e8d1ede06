"""Tabular data controller: fetch orchestration, state sync, paging and columns.

Provides TableController, the state-management core behind a paginated,
searchable table. It owns the pagination state, the column definitions and
the fetch epoch, and composes the collaborators:

- a fetch transport (remote collections),
- a URL query-parameter adapter and a key-value store (state persistence),
- a FilterEngine (search) and a SchemaInferencer (column inference).

All mutations happen on the event loop thread. Fetches are never cancelled;
a response is applied only if no newer fetch was started after it, so an
older response arriving late can never overwrite newer state.
"""

from __future__ import annotations

import asyncio
import itertools
import re
import time
import weakref
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Optional, Union

from nicetable.table_controller.adapters import KeyValueStore, QueryParamsAdapter
from nicetable.table_controller.columns import (
    Column,
    ColumnRegistry,
    build_columns,
    guess_id_property,
    sort_columns,
)
from nicetable.table_controller.config import SortOrder, TableConfig
from nicetable.table_controller.errors import ConfigurationError, ProtocolError, TransportError
from nicetable.table_controller.events import (
    Disposed,
    EventBus,
    FetchEnded,
    FetchFailed,
    FetchStarted,
    MissingData,
    PageChanged,
    ResultsCountChanged,
    ResultsPerPageChanged,
    SearchCleared,
    SearchQueryStringChanged,
)
from nicetable.table_controller.filters import SEARCH_RULE_KEY, SEARCH_RULE_TYPE, FilterEngine, FilterRule
from nicetable.table_controller.pagination import PaginationState, page_count
from nicetable.table_controller.schema import SchemaInferencer
from nicetable.table_controller.transport import (
    CollectionResponse,
    FetchResponse,
    FetchTransport,
    HttpxTransport,
    parse_fetch_response,
)
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

RowDict = dict[str, Any]

_controller_ids = itertools.count(1)
# per query-parameter adapter: a fresh adapter (a page load) numbers its tables from 1 again
_url_key_counters: "weakref.WeakKeyDictionary[Any, itertools.count[int]]" = weakref.WeakKeyDictionary()
_WHITESPACE_ONLY = re.compile(r"\s+")


@dataclass(frozen=True)
class FetchResult:
    """Rows produced by a fetch.

    Attributes:
        rows: The collection (fixed mode) or the current page (paginated mode).
        synchronous: True when served from data already held by the
            controller, False when it came from a network round trip.
    """
    rows: list[RowDict]
    synchronous: bool


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_positive_int(value: Optional[str]) -> Optional[int]:
    n = _parse_int(value)
    return n if n is not None and n > 0 else None


def _url_key_suffix(config: TableConfig, query_params: Any) -> str:
    """Suffix for this table's URL keys, stable across reloads of the same page."""
    if config.table_id:
        return config.table_id
    counter = _url_key_counters.setdefault(query_params, itertools.count(1))
    return f"c{next(counter)}"


class TableController:
    """State-management core of a tabular data widget.

    **Public API:**

    - **render()** / **get_rows_to_display()** - fetch (or reuse) data and
      produce columns / the visible rows of the current page.
    - **fetch_rows()** - the fetch decision tree with the staleness guard.
    - **go_to_*()**, **set_results_per_page()**, **sort_by()** - committed
      state changes, mirrored to the URL and storage.
    - **search()**, **set_search_filter()**, **clear_search()** - search lifecycle.
    - **on_location_changed()** - reconcile with the URL after back/forward navigation.
    - **events** - :class:`EventBus` with the lifecycle notifications.
    - **dispose()**

    Subclasses may override the hooks ``on_fetch_start``, ``on_fetch_end``,
    ``on_fetch_error``, ``before_render`` and ``after_render``.
    """

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        *,
        data: Optional[Sequence[RowDict]] = None,
        transport: Optional[FetchTransport] = None,
        query_params: Optional[QueryParamsAdapter] = None,
        storage: Optional[KeyValueStore] = None,
        filters: Optional[FilterEngine] = None,
        schema_inferencer: Optional[SchemaInferencer] = None,
        registry: Optional[ColumnRegistry] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        """Initialize the controller and load state from the URL and storage.

        Args:
            config: Table options; defaults to ``TableConfig()``.
            data: A complete local collection. Supplying it makes the table fixed.
            transport: Fetch transport; an :class:`HttpxTransport` is created
                on first use when omitted.
            query_params: URL adapter. Without one, query-string sync is off.
            storage: Persistent store. Without one, local storage sync is off.
            filters: Filter engine (a fresh one by default).
            schema_inferencer: Column type inference (a fresh one by default).
            registry: Column defaults by type/name (fresh defaults by default).
            events: Event bus to emit on (a fresh one by default).
        """
        config = config or TableConfig()
        self.cid: str = f"c{next(_controller_ids)}"

        self.data: Optional[list[RowDict]] = list(data) if data is not None else None
        self.fixed: bool = config.fixed or data is not None

        self.transport = transport
        self.query_params = query_params
        self.storage = storage
        self.filters = filters or FilterEngine()
        self.schema_inferencer = schema_inferencer or SchemaInferencer()
        self.registry = registry or ColumnRegistry()
        self.events = events or EventBus()

        self.columns: Optional[list[Column]] = None
        self.columns_initialized: bool = False

        self._cache: dict[str, Any] = {}
        self._last_fetch_epoch: int = 0
        self._anchor_epoch: Optional[int] = None
        self._pending_render: Optional[asyncio.Future[None]] = None
        self._guessed_search_properties: Optional[list[str]] = None

        if not self.fixed:
            # paginated server side: the server searches, not the client
            self.filters.search_disabled = True

        self.use_query_string: bool = config.use_query_string and query_params is not None
        self.use_local_storage: bool = config.use_local_storage and storage is not None

        if config.multitable and self.use_query_string:
            suffix = _url_key_suffix(config, query_params)
            config = replace(
                config,
                page_query_string=config.page_query_string + suffix,
                search_query_string=config.search_query_string + suffix,
                results_per_page_query_string=config.results_per_page_query_string + suffix,
            )
        self.config: TableConfig = config

        self.pagination = PaginationState(
            page=config.page,
            results_per_page=config.results_per_page,
            total_rows_count=len(self.data) if self.data else 0,
            order_by=config.order_by,
            sort_order=config.sort_order,
            search=config.search,
        )
        self.load_settings()

        logger.info(
            "table controller %s created: fixed=%s url=%s page=%s size=%s",
            self.cid,
            self.fixed,
            config.url,
            self.pagination.page,
            self.pagination.results_per_page,
        )

    # ------------------------------------------------------------------
    # Events and overridable hooks
    # ------------------------------------------------------------------

    def on(self, event_type: type, cb: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe *cb* to *event_type*; returns an unsubscribe function."""
        return self.events.subscribe(event_type, cb)

    def on_fetch_start(self) -> None:
        pass

    def on_fetch_end(self) -> None:
        pass

    def on_fetch_error(self, error: TransportError) -> None:
        pass

    def before_render(self) -> None:
        pass

    def after_render(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Settings: URL and storage
    # ------------------------------------------------------------------

    def load_settings(self) -> None:
        """Load search, page and page size from the URL, then page size from storage.

        URL values win over configured defaults, a stored page size wins over
        both. A missing page is written to the URL so it always carries one.
        """
        cfg = self.config
        p = self.pagination

        if self.use_query_string:
            assert self.query_params is not None
            search = self.query_params.get(cfg.search_query_string)
            if search:
                self.set_search_filter(search)

            page = _parse_positive_int(self.query_params.get(cfg.page_query_string))
            if page is not None:
                p.page = page
            else:
                self.query_params.set(cfg.page_query_string, p.page)

            size = _parse_positive_int(self.query_params.get(cfg.results_per_page_query_string))
            if size is not None:
                p.results_per_page = size

        if self.use_local_storage:
            assert self.storage is not None
            size = _parse_positive_int(self.storage.get(cfg.results_per_page_storage_key))
            if size is not None:
                p.results_per_page = size
                if self.use_query_string:
                    assert self.query_params is not None
                    self.query_params.set(cfg.results_per_page_query_string, size)

        # page may be out of range until the first totals arrive
        p.total_page_count = page_count(p.total_rows_count, p.results_per_page)
        p.recompute_bounds()

    def _store_page(self) -> None:
        if self.use_query_string:
            assert self.query_params is not None
            self.query_params.set(self.config.page_query_string, self.pagination.page)

    def _on_page_change(self) -> None:
        self._store_page()
        self.events.emit(PageChanged(self.pagination.page))

    def _on_results_per_page_change(self) -> None:
        size = self.pagination.results_per_page
        if self.use_local_storage:
            assert self.storage is not None
            self.storage.set(self.config.results_per_page_storage_key, size)
        if self.use_query_string:
            assert self.query_params is not None
            self.query_params.set(self.config.results_per_page_query_string, size)
        self.events.emit(ResultsPerPageChanged(size))

    def on_location_changed(self) -> bool:
        """Reconcile in-memory state with the URL after external navigation.

        Invalid or missing URL values are overwritten with the in-memory
        ones; valid differing values are adopted. Returns True if any state
        was adopted from the URL.
        """
        if not self.use_query_string:
            return False
        assert self.query_params is not None
        cfg = self.config
        p = self.pagination
        qp = self.query_params
        changed = False

        qs_page = _parse_int(qp.get(cfg.page_query_string))
        if qs_page is None or qs_page < 1 or qs_page > p.total_page_count:
            logger.debug("reverting url page %r to %s", qs_page, p.page)
            qp.set(cfg.page_query_string, p.page)
        elif qs_page != p.page:
            p.page = qs_page
            p.recompute_bounds()
            self._on_page_change()
            changed = True

        qs_size = _parse_int(qp.get(cfg.results_per_page_query_string))
        if qs_size is None or qs_size <= 0 or not cfg.is_allowed_page_size(qs_size):
            logger.debug("reverting url page size %r to %s", qs_size, p.results_per_page)
            qp.set(cfg.results_per_page_query_string, p.results_per_page)
        elif qs_size != p.results_per_page:
            p.set_results_per_page(qs_size)
            self._on_results_per_page_change()
            self._on_page_change()
            changed = True

        qs_search = qp.get(cfg.search_query_string) or ""
        if qs_search != p.search:
            if qs_search:
                self.set_search_filter(qs_search)
            else:
                self.clear_search()
                self.events.emit(SearchCleared())
            self.events.emit(SearchQueryStringChanged(qs_search))
            changed = True

        if changed:
            logger.info("adopted url state: page=%s size=%s search=%r", p.page, p.results_per_page, p.search)
        return changed

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def update_totals(self, total: int) -> None:
        """Apply a new total row count, resetting to page 1 when out of range."""
        previous = self.pagination.total_rows_count
        if self.pagination.update_totals(total):
            self._on_page_change()
        if total != previous:
            self.events.emit(ResultsCountChanged(total))

    def is_valid_page(self, value: Any) -> bool:
        return self.pagination.is_valid_page(value)

    def go_to_page(self, page: int) -> bool:
        if not self.is_valid_page(page):
            return False
        self.pagination.page = page
        self.pagination.recompute_bounds()
        self._on_page_change()
        return True

    def go_to_first(self) -> None:
        self.pagination.page = 1
        self.pagination.recompute_bounds()
        self._on_page_change()

    def go_to_last(self) -> None:
        self.pagination.page = self.pagination.total_page_count
        self.pagination.recompute_bounds()
        self._on_page_change()

    def go_to_next(self) -> bool:
        return self.go_to_page(self.pagination.page + 1)

    def go_to_prev(self) -> bool:
        return self.go_to_page(self.pagination.page - 1)

    def set_results_per_page(self, size: int) -> None:
        """Commit a new page size (URL + storage), revalidating the current page."""
        if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
            raise ValueError(f"results per page must be a positive integer, got {size!r}")
        if size == self.pagination.results_per_page:
            return
        self.pagination.set_results_per_page(size)
        self._on_results_per_page_change()
        self._on_page_change()

    def sort_by(self, column: Union[Column, str]) -> None:
        """Sort by *column*; sorting the same column again flips the order.

        A new sort order invalidates the current page position, so page 1 is committed.
        """
        name = column.name if isinstance(column, Column) else column
        p = self.pagination
        if p.order_by == name and p.sort_order is SortOrder.ASC:
            p.sort_order = SortOrder.DESC
        else:
            p.sort_order = SortOrder.ASC
        p.order_by = name
        p.page = 1
        p.recompute_bounds()
        self._on_page_change()

    def sort_client_side(self, rows: list[RowDict]) -> list[RowDict]:
        """Sort *rows* by the current order; rows without a value go last."""
        p = self.pagination
        key = p.order_by
        if not key:
            return rows
        reverse = p.sort_order is SortOrder.DESC
        present = [r for r in rows if r.get(key) is not None]
        missing = [r for r in rows if r.get(key) is None]
        try:
            present.sort(key=lambda r: r[key], reverse=reverse)
        except TypeError:
            present.sort(key=lambda r: str(r[key]), reverse=reverse)
        return present + missing

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def has_data(self) -> bool:
        return bool(self.data)

    @property
    def anchor_epoch(self) -> Optional[int]:
        return self._anchor_epoch

    @property
    def last_fetch_pattern(self) -> Optional[re.Pattern[str]]:
        """Match pattern of the search the server applied to the last page, if any."""
        return self._cache.get("last_fetch_filter")

    def build_request_payload(self, extra: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        p = self.pagination
        payload: dict[str, Any] = {
            "fixed": self.fixed,
            "page": p.page,
            "size": p.results_per_page,
            "orderBy": p.order_by or "",
            "sortOrder": p.sort_order.value if p.sort_order else "",
            "search": p.search,
            "timestamp": self._anchor_epoch,
        }
        payload.update(self.config.post_data)
        if extra:
            payload.update(extra)
        return payload

    def _next_epoch(self) -> int:
        now = time.time_ns() // 1_000_000
        return now if now > self._last_fetch_epoch else self._last_fetch_epoch + 1

    def _is_stale(self, epoch: int) -> bool:
        return epoch < self._last_fetch_epoch

    def _get_transport(self) -> FetchTransport:
        if self.transport is None:
            self.transport = HttpxTransport()
        return self.transport

    async def fetch_rows(self, extra_post_data: Optional[Mapping[str, Any]] = None) -> Optional[FetchResult]:
        """Return the collection or current page, fetching it when needed.

        Returns ``None`` when the response was discarded because a newer
        fetch started meanwhile, or when the transport failed (reported via
        ``on_fetch_error`` and a :class:`FetchFailed` event).

        Raises:
            ConfigurationError: No local data and no ``url`` configured.
            ProtocolError: The current response violates the response contract.
        """
        if self.fixed and self.has_data():
            assert self.data is not None
            return FetchResult(rows=self.data, synchronous=True)

        url = self.config.url
        if not url:
            raise ConfigurationError("Missing data, or url option to fetch data")

        epoch = self._next_epoch()
        self._last_fetch_epoch = epoch
        if self._anchor_epoch is None:
            # kept for the controller lifetime: a stable reference for fast-growing collections
            self._anchor_epoch = epoch

        payload = self.build_request_payload(extra_post_data)
        transport = self._get_transport()
        logger.debug("fetch %s: POST %s %s", epoch, url, payload)

        self.on_fetch_start()
        self.events.emit(FetchStarted())
        try:
            body = await transport.post_json(url, payload)
        except TransportError as e:
            if self._is_stale(epoch):
                logger.debug("fetch %s failed but is stale; ignored", epoch)
                return None
            logger.warning("fetch %s failed: %s", epoch, e)
            self.on_fetch_error(e)
            self.events.emit(FetchFailed(reason="transport"))
            return None
        except ProtocolError:
            if self._is_stale(epoch):
                return None
            raise
        finally:
            self.on_fetch_end()
            self.events.emit(FetchEnded())

        if self._is_stale(epoch):
            logger.debug("fetch %s discarded: newer fetch %s started", epoch, self._last_fetch_epoch)
            return None

        response = parse_fetch_response(body)
        result = self._apply_response(response)
        self.initialize_columns()
        self.check_pending_render()
        return result

    def _apply_response(self, response: FetchResponse) -> FetchResult:
        if isinstance(response, CollectionResponse):
            if not self.fixed:
                logger.info("server returned the whole collection (%s rows); table is now fixed", len(response.rows))
            self.fixed = True
            self.filters.search_disabled = False
            self.data = response.rows
            self.update_totals(len(response.rows))
            return FetchResult(rows=response.rows, synchronous=False)

        if response.search:
            # the local pagination search is left alone; only the pattern is cached
            self._cache["last_fetch_filter"] = self.filters.get_match_pattern(
                response.search, self.config.search_mode
            )
        self.data = response.subset
        self.update_totals(response.total)
        return FetchResult(rows=response.subset, synchronous=False)

    def check_pending_render(self) -> None:
        """Resolve a render that is waiting for data, once data is available."""
        pending = self._pending_render
        if pending is not None and self.has_data():
            self._pending_render = None
            if not pending.done():
                pending.set_result(None)

    async def render(self) -> Optional[FetchResult]:
        """Obtain data, initialize and sort columns, and run the render hooks.

        When the first fetch returns no rows (for example a stale page number
        in the URL), a :class:`MissingData` event is emitted and the call
        waits until a later fetch brings data.
        """
        if self.fixed and self.has_data():
            assert self.data is not None
            result = FetchResult(rows=self.data, synchronous=True)
        else:
            fetched = await self.fetch_rows()
            if fetched is None:
                return None
            result = fetched
            if not result.rows and not self.columns_initialized:
                pending = self._pending_render
                if pending is None or pending.done():
                    pending = asyncio.get_running_loop().create_future()
                    self._pending_render = pending
                    self.events.emit(MissingData())
                # shared by concurrent renders; shielded so cancelling one render leaves the others waiting
                await asyncio.shield(pending)
                result = FetchResult(rows=list(self.data or []), synchronous=False)

        self.before_render()
        self.initialize_columns()
        if self.columns:
            sort_columns(self.columns)
        self.after_render()
        return result

    async def get_rows_to_display(self, extra_post_data: Optional[Mapping[str, Any]] = None) -> Optional[list[RowDict]]:
        """Rows visible on the current page, after search, sort and slicing.

        Returns ``None`` if the fetch was discarded or failed.
        """
        result = await self.fetch_rows(extra_post_data)
        if result is None:
            return None

        self.ensure_search_filter()
        rows = self.filters.skim(result.rows)
        if self.fixed:
            self.update_totals(len(rows))
            rows = self.sort_client_side(rows)

        if self.config.row_count:
            rows = [{**row, "rowCount": i} for i, row in enumerate(rows, start=1)]

        p = self.pagination
        if self.data is not None and len(self.data) > p.results_per_page and self.config.pagination_enabled:
            return p.subset(rows)
        return rows

    async def refresh(self) -> Optional[list[RowDict]]:
        return await self.get_rows_to_display()

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def initialize_columns(self) -> None:
        """Build columns from the held data; runs once, and only when data exists."""
        if self.columns_initialized or not self.has_data():
            return
        assert self.data is not None
        self.columns_initialized = True
        cfg = self.config
        object_schema = self.schema_inferencer.get_collection_structure(self.data, limit=cfg.analyze_limit)
        columns = build_columns(
            object_schema,
            column_default=cfg.column_default,
            registry=self.registry,
            overrides=cfg.columns,
        )
        self.columns = sort_columns(columns)
        logger.info("columns initialized: %s", [c.name for c in self.columns])

    def get_id_property(self) -> str:
        if self.config.id_property:
            return self.config.id_property
        return guess_id_property(self.columns)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def validate_for_search(self, value: str) -> bool:
        """True if *value* should trigger a search (not blank, long enough)."""
        if _WHITESPACE_ONLY.fullmatch(value):
            return False
        return len(value) >= self.config.min_search_chars

    def get_search_properties(self) -> Optional[list[str]]:
        """Searchable fields: configured ones, else guessed from the first record.

        Fields whose column disallows search are excluded from guessed
        fields. Returns None while there is no data to guess from.
        """
        if self.config.search_properties is not None:
            return list(self.config.search_properties)
        if not self.data:
            return None
        if self._guessed_search_properties is None:
            self._guessed_search_properties = self.schema_inferencer.guess_searchable_properties(self.data[0])
        disallowed = {c.name for c in self.columns or [] if not c.allow_search}
        return [name for name in self._guessed_search_properties if name not in disallowed]

    def set_search_filter(self, value: str) -> None:
        """Store *value* as the current search and (re)install the ``"search"`` rule."""
        self.pagination.search = value
        properties = self.get_search_properties()
        if properties:
            self.filters.set(
                FilterRule(
                    key=SEARCH_RULE_KEY,
                    type=SEARCH_RULE_TYPE,
                    value=value,
                    search_properties=properties,
                    search_mode=self.config.search_mode,
                )
            )

    def ensure_search_filter(self) -> None:
        search = self.pagination.search
        if search and self.filters.get_rule_by_key(SEARCH_RULE_KEY) is None:
            self.set_search_filter(search)

    def on_search_start(self, value: str) -> None:
        if self.use_query_string:
            assert self.query_params is not None
            self.query_params.set(self.config.search_query_string, value)

    def clear_search(self) -> None:
        """Remove the search rule, reset the search value and clear it from the URL."""
        self.filters.remove_rule_by_key(SEARCH_RULE_KEY)
        if self.use_query_string:
            assert self.query_params is not None
            self.query_params.set(self.config.search_query_string, "")
        self.pagination.search = ""

    def search(self, value: str) -> bool:
        """Apply a typed search value; returns True if the search state changed.

        An empty value clears an active search. Values rejected by
        :meth:`validate_for_search` are ignored. A change commits page 1.
        """
        if not self.config.allow_search:
            return False
        if value == "":
            if not self.pagination.search:
                return False
            self.clear_search()
            self.events.emit(SearchCleared())
        elif not self.validate_for_search(value) or value == self.pagination.search:
            return False
        else:
            self.set_search_filter(value)
            self.on_search_start(value)
        self.pagination.page = 1
        self.pagination.recompute_bounds()
        self._on_page_change()
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Release column state and emit :class:`Disposed`."""
        self.columns = None
        pending = self._pending_render
        self._pending_render = None
        if pending is not None and not pending.done():
            pending.cancel()
        self.events.emit(Disposed())
        logger.debug("table controller %s disposed", self.cid)
