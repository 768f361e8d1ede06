# src/nicetable/table_controller/columns.py
"""Column definitions assembled from inferred schemas and explicit overrides.

Columns are layered, later layers winning:

1. table column defaults (``TableConfig.column_default``)
2. defaults by field type (``ColumnRegistry.by_type``, keyed by lowercased type)
3. defaults by field name (``ColumnRegistry.by_name``, e.g. ``id`` / ``guid``)
4. inferred schema attributes
5. explicit user override for the field

After assembly columns are sorted: explicit numeric positions first, then
the rest alphabetically by display name; positions are then reassigned as
the 0-based sorted index.
"""

from __future__ import annotations

import datetime as _dt
import functools
import itertools
import locale
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Optional, Union

from nicetable.table_controller.config import ColumnOverrides
from nicetable.table_controller.errors import ConfigurationError

TypeDefault = Union[Mapping[str, Any], Callable[[Mapping[str, Any], Mapping[str, Any]], Mapping[str, Any]]]

_TEMPLATE_NAME_PLACEHOLDER = re.compile(r"##\s*Name\s*##")
_ID_PROPERTY = re.compile(r"^_?id$|^_?guid$", re.IGNORECASE)

_column_ids = itertools.count(1)


def _next_column_id() -> str:
    return f"col{next(_column_ids)}"


def _format_number(value: Any) -> str:
    return f"{value}"


def _format_date(value: Any) -> str:
    if isinstance(value, (_dt.date, _dt.datetime)):
        return value.strftime("%d/%m/%Y %H:%M")
    return "" if value is None else str(value)


def default_type_registry() -> dict[str, TypeDefault]:
    return {
        "number": lambda column_schema, object_schema: {"format": _format_number},
        "date": lambda column_schema, object_schema: {"format": _format_date},
    }


def default_name_registry() -> dict[str, Mapping[str, Any]]:
    return {
        "id": {"name": "id", "type": "id", "hidden": True},
        "guid": {"name": "guid", "type": "guid", "hidden": True},
    }


@dataclass
class ColumnRegistry:
    """Column defaults by type and by name.

    Each controller receives its own registry, so applications can extend
    one table's defaults without affecting another.
    """
    by_type: dict[str, TypeDefault] = field(default_factory=default_type_registry)
    by_name: dict[str, Mapping[str, Any]] = field(default_factory=default_name_registry)

    def type_defaults(self, type_name: str, column_schema: Mapping[str, Any], object_schema: Mapping[str, Any]) -> dict[str, Any]:
        entry = self.by_type.get(type_name.lower())
        if entry is None:
            return {}
        if callable(entry):
            return dict(entry(column_schema, object_schema))
        return dict(entry)

    def name_defaults(self, name: str) -> dict[str, Any]:
        return dict(self.by_name.get(name, {}))


@dataclass
class Column:
    """A single table column.

    ``name`` is the identity of a column. ``position`` is authoritative only
    after :func:`sort_columns`. Attributes without a dedicated field (for
    example a ``format`` callable from the type defaults) are kept in
    ``extra``.
    """
    name: str
    type: str = "string"
    display_name: str = ""
    position: Optional[int] = None
    sortable: bool = True
    groupable: bool = True
    resizable: bool = True
    allow_search: bool = True
    template: str = ""
    hidden: bool = False
    secret: bool = False
    order: str = ""
    cid: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_attributes(cls, attrs: Mapping[str, Any]) -> "Column":
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs = {k: v for k, v in attrs.items() if k in known}
        extra = {k: v for k, v in attrs.items() if k not in known}
        return cls(**kwargs, extra=extra)

    def format(self, value: Any) -> str:
        """Display text for *value* using the column's ``format`` callable, if any."""
        fmt = self.extra.get("format")
        if callable(fmt):
            return fmt(value)
        return "" if value is None else str(value)


def normalize_column_overrides(columns: Optional[ColumnOverrides]) -> list[tuple[Optional[str], dict[str, Any]]]:
    """Turn explicit overrides into ``(field_name, attrs)`` pairs in declaration order.

    Bare strings are display names. Sequence entries are matched to fields
    through their ``name`` attribute; a bare string in a sequence has no
    field name and therefore never matches.
    """
    if not columns:
        return []
    pairs: list[tuple[Optional[str], dict[str, Any]]] = []
    if isinstance(columns, Mapping):
        for name, value in columns.items():
            attrs = {"display_name": value} if isinstance(value, str) else dict(value)
            pairs.append((name, attrs))
    else:
        for value in columns:
            attrs = {"display_name": value} if isinstance(value, str) else dict(value)
            pairs.append((attrs.get("name"), attrs))
    return pairs


def build_columns(
    object_schema: Mapping[str, Mapping[str, Any]],
    *,
    column_default: Mapping[str, Any],
    registry: ColumnRegistry,
    overrides: Optional[ColumnOverrides] = None,
) -> list[Column]:
    """Assemble unsorted columns for every field of *object_schema*."""
    declared = normalize_column_overrides(overrides)
    by_name = {name: attrs for name, attrs in declared if name is not None}

    columns: list[Column] = []
    for name, field_schema in object_schema.items():
        schema = dict(field_schema)
        type_name = schema.get("type") or "string"
        schema["type"] = type_name

        attrs: dict[str, Any] = dict(column_default)
        attrs["name"] = name
        attrs.update(registry.type_defaults(type_name, schema, object_schema))
        attrs.update(registry.name_defaults(name))
        attrs.update(schema)
        if name in by_name:
            attrs.update(by_name[name])

        attrs["cid"] = _next_column_id()
        attrs["template"] = _TEMPLATE_NAME_PLACEHOLDER.sub("{{" + name + "}}", str(attrs.get("template", "")), count=1)
        if not isinstance(attrs.get("display_name"), str) or not attrs.get("display_name"):
            attrs["display_name"] = name
        columns.append(Column.from_attributes(attrs))

    # explicit overrides pin their columns in declaration order
    for index, (name, _attrs) in enumerate(declared):
        col = next((c for c in columns if c.name == name), None)
        if col is not None and col.position is None:
            col.position = index

    return columns


def _compare_text(a: str, b: str) -> int:
    return locale.strcoll(a.casefold(), b.casefold())


def _compare_columns(a: Column, b: Column) -> int:
    a_num = _is_number(a.position)
    b_num = _is_number(b.position)
    if a_num and not b_num:
        return -1
    if b_num and not a_num:
        return 1
    if a_num and b_num and a.position != b.position:
        return -1 if a.position < b.position else 1  # type: ignore[operator]
    return _compare_text(a.display_name, b.display_name)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def sort_columns(columns: list[Column]) -> list[Column]:
    """Sort *columns* in place and reassign ``position`` as the sorted index."""
    columns.sort(key=functools.cmp_to_key(_compare_columns))
    for i, col in enumerate(columns):
        col.position = i
    return columns


def guess_id_property(columns: Optional[Sequence[Column]]) -> str:
    """Name of the field used as row id.

    Raises:
        ConfigurationError: If columns exist but none looks like an id.
    """
    if not columns:
        return "id"
    for col in columns:
        if _ID_PROPERTY.match(col.name):
            return col.name
    raise ConfigurationError(
        "cannot guess which property should be used as id; set TableConfig.id_property"
    )
