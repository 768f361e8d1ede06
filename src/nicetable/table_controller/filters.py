"""Filter rules and the engine that reduces a collection to matching rows.

The controller owns rule creation/removal by key (``"search"``); the engine
owns matching. Matching runs over the string representation of each value,
using pandas vectorized string operations.
"""

from __future__ import annotations

import datetime as _dt
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional

import pandas as pd

from nicetable.table_controller.config import SearchMode
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

RowDict = Mapping[str, Any]

SEARCH_RULE_KEY = "search"
SEARCH_RULE_TYPE = "search"

_SENTENCE_SEPARATORS = re.compile(r"[,;.]+")


@dataclass
class FilterRule:
    """A named filter rule.

    Only ``type == "search"`` rules are evaluated by :class:`FilterEngine`;
    other rule types are kept and returned by key but do not filter.
    """
    key: str
    type: str
    value: str
    search_properties: list[str] = field(default_factory=list)
    search_mode: SearchMode = SearchMode.FULL_STRING


@lru_cache(maxsize=128)
def _compile_match_pattern(search: str, mode: SearchMode) -> Optional[re.Pattern[str]]:
    text = search.strip()
    if not text:
        return None
    if mode is SearchMode.SPLIT_WORDS:
        parts = text.split()
    elif mode is SearchMode.SPLIT_SENTENCES:
        parts = [p.strip() for p in _SENTENCE_SEPARATORS.split(text) if p.strip()]
    else:
        parts = [text]
    if not parts:
        return None
    return re.compile("|".join(re.escape(p) for p in parts), re.IGNORECASE)


def _to_search_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN
        return ""
    if isinstance(value, _dt.datetime):
        return value.isoformat(sep=" ")
    return str(value)


class FilterEngine:
    """Holds named filter rules and applies them to collections of records."""

    def __init__(self) -> None:
        self._rules: dict[str, FilterRule] = {}
        # search rules are not evaluated while the collection is paginated server side
        self.search_disabled: bool = False

    @property
    def rules(self) -> list[FilterRule]:
        return list(self._rules.values())

    def set(self, rule: FilterRule) -> None:
        """Register *rule*, replacing any existing rule with the same key."""
        self._rules[rule.key] = rule

    def get_rule_by_key(self, key: str) -> Optional[FilterRule]:
        return self._rules.get(key)

    def remove_rule_by_key(self, key: str) -> Optional[FilterRule]:
        return self._rules.pop(key, None)

    def get_match_pattern(
        self, search: str, mode: SearchMode = SearchMode.FULL_STRING
    ) -> Optional[re.Pattern[str]]:
        """Compiled, case-insensitive pattern for *search* (``None`` for blank input).

        Patterns are cached; the same search string is compiled once.
        """
        return _compile_match_pattern(search, mode)

    def skim(self, rows: Sequence[RowDict]) -> list[RowDict]:
        """Return the rows that satisfy every active rule, preserving order."""
        rows = list(rows)
        active = [
            r for r in self._rules.values()
            if r.type == SEARCH_RULE_TYPE and not self.search_disabled
        ]
        if not rows or not active:
            return rows

        df = pd.DataFrame.from_records(rows)
        keep = pd.Series(True, index=df.index)
        for rule in active:
            pattern = self.get_match_pattern(rule.value, rule.search_mode)
            if pattern is None:
                continue
            props = [p for p in rule.search_properties if p in df.columns]
            matched = pd.Series(False, index=df.index)
            for prop in props:
                text = df[prop].map(_to_search_text)
                matched |= text.str.contains(pattern.pattern, flags=pattern.flags, regex=True, na=False)
            keep &= matched

        result = [row for row, ok in zip(rows, keep.tolist()) if ok]
        logger.debug("skim: %s of %s row(s) kept", len(result), len(rows))
        return result
