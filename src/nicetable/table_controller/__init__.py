"""TableController - state-management core of a paginated, searchable table."""

from .adapters import JsonFileStore, KeyValueStore, MemoryQueryParams, MemoryStore, QueryParamsAdapter
from .columns import Column, ColumnRegistry
from .config import SearchMode, SortOrder, TableConfig
from .controller import FetchResult, TableController
from .errors import ConfigurationError, NiceTableError, ProtocolError, TransportError
from .events import (
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
from .filters import FilterEngine, FilterRule
from .pagination import PaginationState, page_count
from .schema import SchemaInferencer
from .transport import HttpxTransport

__all__ = [
    "Column",
    "ColumnRegistry",
    "ConfigurationError",
    "Disposed",
    "EventBus",
    "FetchEnded",
    "FetchFailed",
    "FetchResult",
    "FetchStarted",
    "FilterEngine",
    "FilterRule",
    "HttpxTransport",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryQueryParams",
    "MemoryStore",
    "MissingData",
    "NiceTableError",
    "PageChanged",
    "PaginationState",
    "ProtocolError",
    "QueryParamsAdapter",
    "ResultsCountChanged",
    "ResultsPerPageChanged",
    "SchemaInferencer",
    "SearchCleared",
    "SearchMode",
    "SearchQueryStringChanged",
    "SortOrder",
    "TableConfig",
    "TableController",
    "TransportError",
    "page_count",
]
