"""Key-value adapters over URL query parameters and persistent storage.

The controller only needs ``get(key) -> str | None`` and ``set(key, value)``.
In-memory implementations serve tests and headless use; a JSON file store
persists settings between sessions; the NiceGUI-backed adapters live in
:mod:`nicetable.table_controller.nicegui_adapters`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode

from platformdirs import user_config_dir

from nicetable.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class QueryParamsAdapter(Protocol):
    """Read/write access to the current URL query parameters."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: Any) -> None: ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Persistent string key-value storage (e.g. browser local storage)."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryQueryParams:
    """Query parameters held in memory.

    Setting ``""`` or ``None`` removes the key. :meth:`replace_from_search`
    replaces every parameter, which is what a navigation event (back/forward)
    does to the URL.
    """

    def __init__(self, search: str = "") -> None:
        self._params: dict[str, str] = {}
        self.replace_from_search(search)

    def get(self, key: str) -> Optional[str]:
        return self._params.get(key)

    def set(self, key: str, value: Any) -> None:
        if value is None or value == "":
            self._params.pop(key, None)
        else:
            self._params[key] = str(value)

    def replace_from_search(self, search: str) -> None:
        """Replace all parameters from a ``?a=1&b=2`` style string."""
        self._params = dict(parse_qsl(search.lstrip("?"), keep_blank_values=False))

    def to_search(self) -> str:
        return f"?{urlencode(self._params)}" if self._params else ""

    def as_dict(self) -> dict[str, str]:
        return dict(self._params)


class MemoryStore:
    """Dict-backed :class:`KeyValueStore`."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, str] = {k: str(v) for k, v in (initial or {}).items()}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = str(value)


class JsonFileStore:
    """:class:`KeyValueStore` persisted as a JSON object on disk.

    Behavior:
    - missing or unreadable file -> starts empty (warning logged)
    - every ``set`` rewrites the file
    """

    def __init__(self, path: Optional[Path] = None, *, app_name: str = "nicetable") -> None:
        self.path: Path = path or (Path(user_config_dir(app_name)) / "table_settings.json")
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("could not read %s (%s); starting empty", self.path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("ignoring %s: top-level JSON is not an object", self.path)
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = str(value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
