"""HTTP transport and response parsing for remote collections.

Request: ``POST url`` with a JSON body
``{fixed, page, size, orderBy, sortOrder, search, timestamp, ...post_data}``.

Response: either a JSON array (the complete collection) or a page envelope
``{"subset": [...], "total": <number>, "search": <optional str>}``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union

import httpx

from nicetable.table_controller.errors import ProtocolError, TransportError
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

RowDict = dict[str, Any]


class FetchTransport(Protocol):
    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any: ...


@dataclass(frozen=True)
class CollectionResponse:
    """The server returned the whole collection."""
    rows: list[RowDict]


@dataclass(frozen=True)
class PageResponse:
    """The server returned one page plus the total row count."""
    subset: list[RowDict]
    total: int
    search: Optional[str] = None


FetchResponse = Union[CollectionResponse, PageResponse]


def parse_fetch_response(body: Any) -> FetchResponse:
    """Classify a decoded response body.

    Raises:
        ProtocolError: If the body is neither an array nor a valid page envelope.
    """
    if isinstance(body, list):
        return CollectionResponse(rows=body)
    if not isinstance(body, dict):
        raise ProtocolError(f"The returned object is not a catalog: {type(body).__name__}")
    subset = body.get("subset")
    if not isinstance(subset, list):
        raise ProtocolError("The returned object is not a catalog: missing 'subset' array")
    total = body.get("total")
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise ProtocolError("Missing total items count in response object ('total' must be a number)")
    if isinstance(total, float) and not total.is_integer():
        raise ProtocolError(f"Total items count must be a whole number, got {total!r}")
    search = body.get("search")
    return PageResponse(subset=subset, total=int(total), search=search if search else None)


class HttpxTransport:
    """POSTs JSON with an ``httpx.AsyncClient``.

    A client can be injected (sharing a connection pool, or an
    ``httpx.MockTransport`` in tests); otherwise one is created per request.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._headers = dict(headers or {})

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        """POST *payload* as JSON and return the decoded response body.

        Raises:
            TransportError: Connection failure or non-2xx status.
            ProtocolError: The response body is not valid JSON.
        """
        try:
            if self._client is not None:
                response = await self._client.post(url, json=dict(payload), headers=self._headers, timeout=self._timeout)
                response.raise_for_status()
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=dict(payload), headers=self._headers)
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"POST {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"POST {url} failed: {e}") from e

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(f"POST {url} returned a body that is not JSON") from e
