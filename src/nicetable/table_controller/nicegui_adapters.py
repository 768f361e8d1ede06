# src/nicetable/table_controller/nicegui_adapters.py
"""NiceGUI bindings for a TableController.

- NiceGuiQueryParams: URL query parameters of the connected browser tab.
  Reads are served from a local copy seeded from the page request; writes
  update the copy and the browser URL through ``history.pushState`` (or
  ``replaceState``).
- NiceGuiBrowserStore: per-browser persistent storage on ``app.storage.user``
  (requires ``storage_secret`` in ``ui.run``).
- TableBinding: forwards back/forward/hash navigation to the controller and
  debounces typed searches.

Why JS hooks:
The browser does not notify the server about history navigation. A small
listener emits ``location.search`` back to Python via ``emitEvent(...)``
with an instance-unique event name, so several tables on one page never
receive each other's events.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Literal, Optional
from urllib.parse import parse_qsl

from nicegui import app, events, ui

from nicetable.table_controller.controller import TableController
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

HistoryMode = Literal["push", "replace"]


def js_set_query_param(*, key: str, value: str, history_mode: HistoryMode = "push") -> str:
    """Return JS that sets (or, for an empty value, deletes) one URL query parameter."""
    method = "pushState" if history_mode == "push" else "replaceState"
    return f"""
(() => {{
  try {{
    const url = new URL(window.location.href);
    const key = {json.dumps(key)};
    const value = {json.dumps(value)};
    if (value === '') {{
      url.searchParams.delete(key);
    }} else {{
      url.searchParams.set(key, value);
    }}
    window.history.{method}(window.history.state, '', url);
  }} catch (err) {{
    console.warn('[nicetable] set query param failed', err);
  }}
}})();
""".strip()


def js_location_change_listener(*, emit_event: str) -> str:
    """Return a ``<script>`` that emits ``{search}`` on popstate/hashchange."""
    return f"""
<script>
(() => {{
  const emitLocation = () => {{
    try {{
      emitEvent('{emit_event}', {{ search: window.location.search }});
    }} catch (err) {{
      console.warn('[nicetable] location emit failed', err);
    }}
  }};
  window.addEventListener('popstate', emitLocation);
  window.addEventListener('hashchange', emitLocation);
}})();
</script>
""".strip()


class NiceGuiQueryParams:
    """Query-parameter adapter for the current NiceGUI client."""

    def __init__(
        self,
        initial: Optional[Mapping[str, str]] = None,
        *,
        history_mode: HistoryMode = "push",
    ) -> None:
        if initial is None:
            initial = dict(ui.context.client.request.query_params)
        self._params: dict[str, str] = {str(k): str(v) for k, v in initial.items()}
        self._history_mode: HistoryMode = history_mode

    def get(self, key: str) -> Optional[str]:
        return self._params.get(key)

    def set(self, key: str, value: Any) -> None:
        text = "" if value is None else str(value)
        if self._params.get(key, "") == text:
            return
        if text:
            self._params[key] = text
        else:
            self._params.pop(key, None)
        ui.run_javascript(js_set_query_param(key=key, value=text, history_mode=self._history_mode))

    def replace_from_search(self, search: str) -> None:
        """Replace the local copy from a ``location.search`` string."""
        self._params = dict(parse_qsl(search.lstrip("?")))


class NiceGuiBrowserStore:
    """Key-value store on ``app.storage.user``, namespaced under one dict."""

    def __init__(self, namespace: str = "nicetable") -> None:
        self._namespace = namespace

    def _bucket(self) -> dict[str, Any]:
        return app.storage.user.setdefault(self._namespace, {})

    def get(self, key: str) -> Optional[str]:
        value = self._bucket().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: Any) -> None:
        bucket = self._bucket()
        bucket[key] = str(value)
        # reassign so NiceGUI persists the nested change
        app.storage.user[self._namespace] = bucket


OnRefresh = Callable[[], Awaitable[None]]


class TableBinding:
    """Wires browser navigation and search input to a TableController.

    Public API:
        on_search_input(value): debounced search (``config.search_delay`` ms)
        handle_location(search): apply a ``location.search`` value (what the
            JS listener emits)
    """

    def __init__(
        self,
        controller: TableController,
        query_params: NiceGuiQueryParams,
        *,
        on_refresh: Optional[OnRefresh] = None,
    ) -> None:
        self._controller = controller
        self._query_params = query_params
        self._on_refresh = on_refresh
        self._debounce_task: Optional[asyncio.Task[None]] = None

        self._evt_location: str = f"nicetable_location_{controller.cid}_{id(self)}"
        ui.add_body_html(js_location_change_listener(emit_event=self._evt_location))
        ui.on(self._evt_location, self._on_location_emitted)

        logger.debug("table binding registered: event=%s", self._evt_location)

    async def _on_location_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args if isinstance(e.args, dict) else {}
        await self.handle_location(str(args.get("search") or ""))

    async def handle_location(self, search: str) -> None:
        self._query_params.replace_from_search(search)
        if self._controller.on_location_changed():
            await self._refresh()

    def on_search_input(self, value: str) -> None:
        """Schedule a search; a newer input within the delay replaces it."""
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounced_search(value))
        self._debounce_task.add_done_callback(self._on_debounce_done)

    async def _debounced_search(self, value: str) -> None:
        await asyncio.sleep(self._controller.config.search_delay / 1000)
        if self._controller.search(value):
            await self._refresh()

    def _on_debounce_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("debounced search failed: %s", exc, exc_info=exc)

    async def _refresh(self) -> None:
        if self._on_refresh is not None:
            await self._on_refresh()
