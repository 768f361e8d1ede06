# tests/table_controller/conftest.py
"""Pytest configuration and shared fixtures for table controller tests."""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest


def pytest_configure() -> None:
    # Ensure the nicetable package is importable when running tests from the repo root.
    repo_root = Path(__file__).resolve().parents[2]
    src_dir = repo_root / "src"
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


def make_rows(n: int) -> list[dict[str, Any]]:
    cities = ["Rome", "Milan", "Turin", "Naples", "Genoa"]
    return [
        {"id": i, "name": f"Person {i:03d}", "city": cities[i % len(cities)], "score": i * 1.5}
        for i in range(1, n + 1)
    ]


@pytest.fixture
def rows_95() -> list[dict[str, Any]]:
    return make_rows(95)


class GatedTransport:
    """Fetch transport whose responses are released by the test, in any order."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        entry: dict[str, Any] = {"url": url, "payload": dict(payload), "gate": asyncio.Event(), "body": None}
        self.calls.append(entry)
        await entry["gate"].wait()
        if isinstance(entry["body"], BaseException):
            raise entry["body"]
        return entry["body"]

    def release(self, index: int, body: Any) -> None:
        self.calls[index]["body"] = body
        self.calls[index]["gate"].set()

    async def wait_for_calls(self, n: int) -> None:
        for _ in range(100):
            if len(self.calls) >= n:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {n} fetch call(s), got {len(self.calls)}")


@pytest.fixture
def gated_transport() -> GatedTransport:
    return GatedTransport()


@pytest.fixture
def mock_http() -> Callable[..., Any]:
    """Build an HttpxTransport backed by httpx.MockTransport.

    The returned factory takes a handler ``(request) -> httpx.Response`` and
    returns ``(transport, requests)`` where ``requests`` collects decoded JSON bodies.
    """
    import httpx

    from nicetable.table_controller.transport import HttpxTransport

    def _factory(handler: Callable[[Any], Any]) -> tuple[HttpxTransport, list[dict[str, Any]]]:
        seen: list[dict[str, Any]] = []

        def _wrapped(request: "httpx.Request") -> "httpx.Response":
            seen.append(json.loads(request.content))
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_wrapped), base_url="http://testserver")
        return HttpxTransport(client), seen

    return _factory


@pytest.fixture
def rows_factory() -> Callable[[int], list[dict[str, Any]]]:
    return make_rows
