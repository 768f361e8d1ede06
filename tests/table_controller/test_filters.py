from __future__ import annotations

from nicetable.table_controller.config import SearchMode
from nicetable.table_controller.filters import FilterEngine, FilterRule


ROWS = [
    {"id": 1, "name": "Alice Smith", "city": "Rome", "note": None},
    {"id": 2, "name": "Bob Stone", "city": "Milan", "note": "likes rome"},
    {"id": 3, "name": "Carla Reyes", "city": "Turin", "note": "vip, early"},
    {"id": 4, "name": "Dan Brown", "city": None},
]


def _search(value: str, props: list[str], mode: SearchMode = SearchMode.FULL_STRING) -> FilterRule:
    return FilterRule(key="search", type="search", value=value, search_properties=props, search_mode=mode)


def test_rules_are_keyed() -> None:
    engine = FilterEngine()
    engine.set(_search("a", ["name"]))
    engine.set(_search("b", ["name"]))
    assert len(engine.rules) == 1
    assert engine.get_rule_by_key("search").value == "b"
    assert engine.remove_rule_by_key("search") is not None
    assert engine.get_rule_by_key("search") is None


def test_skim_full_string_case_insensitive() -> None:
    engine = FilterEngine()
    engine.set(_search("ROME", ["city", "note"]))
    assert [r["id"] for r in engine.skim(ROWS)] == [1, 2]


def test_skim_split_words_matches_any_word() -> None:
    engine = FilterEngine()
    engine.set(_search("stone reyes", ["name"], SearchMode.SPLIT_WORDS))
    assert [r["id"] for r in engine.skim(ROWS)] == [2, 3]


def test_skim_split_sentences() -> None:
    engine = FilterEngine()
    engine.set(_search("dan brown, alice", ["name"], SearchMode.SPLIT_SENTENCES))
    assert [r["id"] for r in engine.skim(ROWS)] == [1, 4]


def test_skim_treats_regex_characters_literally() -> None:
    engine = FilterEngine()
    engine.set(_search("vip,", ["note"]))
    assert [r["id"] for r in engine.skim(ROWS)] == [3]
    engine.set(_search(".*", ["note"]))
    assert engine.skim(ROWS) == []


def test_skim_numbers_and_missing_fields() -> None:
    engine = FilterEngine()
    engine.set(_search("3", ["id", "missing"]))
    assert [r["id"] for r in engine.skim(ROWS)] == [3]


def test_search_disabled_returns_everything() -> None:
    engine = FilterEngine()
    engine.set(_search("rome", ["city"]))
    engine.search_disabled = True
    assert engine.skim(ROWS) == ROWS


def test_skim_returns_original_row_objects() -> None:
    engine = FilterEngine()
    engine.set(_search("alice", ["name"]))
    assert engine.skim(ROWS)[0] is ROWS[0]


def test_match_pattern_is_cached_and_blank_is_none() -> None:
    engine = FilterEngine()
    assert engine.get_match_pattern("abc") is engine.get_match_pattern("abc")
    assert engine.get_match_pattern("   ") is None
    assert engine.get_match_pattern("a b", SearchMode.SPLIT_WORDS).search("xxBxx")
