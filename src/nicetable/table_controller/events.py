"""Typed lifecycle notifications and a small in-process event bus.

Notifications are fire-and-forget: a subscriber that raises is logged and
the remaining subscribers still run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, Union

from nicetable.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchStarted:
    pass


@dataclass(frozen=True)
class FetchEnded:
    pass


@dataclass(frozen=True)
class FetchFailed:
    reason: str


@dataclass(frozen=True)
class MissingData:
    pass


@dataclass(frozen=True)
class Disposed:
    pass


@dataclass(frozen=True)
class SearchQueryStringChanged:
    search: str


@dataclass(frozen=True)
class SearchCleared:
    pass


@dataclass(frozen=True)
class PageChanged:
    page: int


@dataclass(frozen=True)
class ResultsPerPageChanged:
    results_per_page: int


@dataclass(frozen=True)
class ResultsCountChanged:
    total_rows_count: int


TableEvent = Union[
    FetchStarted,
    FetchEnded,
    FetchFailed,
    MissingData,
    Disposed,
    SearchQueryStringChanged,
    SearchCleared,
    PageChanged,
    ResultsPerPageChanged,
    ResultsCountChanged,
]

Subscriber = Callable[[Any], None]


class EventBus:
    """Minimal typed event bus.

    Subscribers register for one event class, or for every event with
    :meth:`subscribe_all`. Dispatch is synchronous, in registration order.
    """

    def __init__(self) -> None:
        self._subs: list[tuple[Optional[type], Subscriber]] = []

    def subscribe(self, event_type: type, cb: Subscriber) -> Callable[[], None]:
        """Register *cb* for *event_type*; returns a function that unsubscribes it."""
        entry = (event_type, cb)
        self._subs.append(entry)
        return lambda: self._remove(entry)

    def subscribe_all(self, cb: Subscriber) -> Callable[[], None]:
        entry = (None, cb)
        self._subs.append(entry)
        return lambda: self._remove(entry)

    def unsubscribe(self, cb: Subscriber) -> None:
        self._subs = [e for e in self._subs if e[1] is not cb]

    def clear(self) -> None:
        self._subs.clear()

    def emit(self, ev: TableEvent) -> None:
        for event_type, cb in list(self._subs):
            if event_type is not None and not isinstance(ev, event_type):
                continue
            try:
                cb(ev)
            except Exception:
                logger.exception("subscriber failed for %s", type(ev).__name__)

    def _remove(self, entry: tuple[Optional[type], Subscriber]) -> None:
        if entry in self._subs:
            self._subs.remove(entry)
