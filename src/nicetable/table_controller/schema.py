"""Schema inference for collections of records.

Column types are derived from the polars dtype of each field over a small
sample of records, mirroring how the grid maps dataframe schemas onto
column types.
"""

from __future__ import annotations

import datetime as _dt
from collections.abc import Mapping, Sequence
from typing import Any

import polars as pl

from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

RowDict = Mapping[str, Any]
ObjectSchema = dict[str, dict[str, Any]]


def polars_dtype_to_column_type(dtype: pl.DataType) -> str:
    """Map a polars dtype to one of the column type names used by column defaults."""
    if dtype == pl.Boolean:
        return "boolean"
    if dtype.is_numeric():
        return "number"
    if dtype.is_temporal() and dtype != pl.Time and dtype != pl.Duration:
        return "date"
    if isinstance(dtype, (pl.List, pl.Array)):
        return "array"
    if isinstance(dtype, pl.Struct):
        return "object"
    return "string"


class SchemaInferencer:
    """Derives a ``{field: {"type": ...}}`` mapping from sample records."""

    def get_collection_structure(self, rows: Sequence[RowDict], *, limit: int = 1) -> ObjectSchema:
        """Infer the field types of *rows*, looking at no more than *limit* records.

        Field order is the order in which fields are first seen.
        """
        sample = [dict(r) for r in rows[: max(1, limit)]]
        if not sample:
            return {}

        df = pl.from_dicts(sample, infer_schema_length=None, strict=False)
        structure: ObjectSchema = {}
        for name, dtype in df.schema.items():
            structure[name] = {"type": polars_dtype_to_column_type(dtype)}

        logger.debug("inferred schema from %s record(s): %s", len(sample), structure)
        return structure

    def guess_searchable_properties(self, record: RowDict) -> list[str]:
        """Fields of *record* whose values are text, numbers or dates."""
        props: list[str] = []
        for name, value in record.items():
            if isinstance(value, bool):
                continue
            if isinstance(value, (str, int, float, _dt.date)):
                props.append(name)
        return props
