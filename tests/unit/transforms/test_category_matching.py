"""Unit tests for fuzzy category matching."""

from __future__ import annotations

import re

import pyarrow as pa
import pytest

from core.errors import WidenTransformError
from core.partition_executor import PartitionExecutor
from transforms.category_matching import (
    CategoryMatcher,
    apply_regex_rules,
    match_categories,
    match_category,
    normalize_category_text,
)
from transforms.reference_data import RegexRule

_BRANDS = ("MERCEDES", "VOLKSWAGEN", "BMW")


def test_normalize_strips_non_letters() -> None:
    """Normalization uppercases and removes digits, punctuation, and spaces."""
    assert normalize_category_text("Mercedes-Benz 2019") == "MERCEDESBENZ"
    assert normalize_category_text("a_b c.d") == "ABCD"


def test_match_category_example() -> None:
    """A close label maps onto the reference category."""
    assert match_category("Mercedes-Benz 2019", _BRANDS) == "MERCEDES"


@pytest.mark.parametrize("value", [None, "", "-", " - ", "2019", "!!"])
def test_match_category_unknown_for_placeholders(value: str | None) -> None:
    """Empty or placeholder labels yield the unknown sentinel."""
    assert match_category(value, _BRANDS) == "UNKNOWN"


def test_match_category_other_above_threshold() -> None:
    """Labels too far from every category are unmatched."""
    assert match_category("Zeppelin", _BRANDS) == "OTHER"


def test_match_category_first_wins_ties() -> None:
    """Equal distances resolve to the earlier reference category."""
    assert match_category("ABX", ("ABC", "ABD"), threshold=0.5) == "ABC"


def test_match_category_compares_normalized_reference() -> None:
    """Reference labels are normalized but returned as written."""
    assert match_category("volkswagen", ("Volks-Wagen",)) == "Volks-Wagen"


def test_regex_rules_replace_matches_literally() -> None:
    """The first changing rule supplies the value with literal replacement."""
    rules = (
        RegexRule("NEVER", re.compile("zzz")),
        RegexRule(r"V\W", re.compile(r"(?i)^vw\b.*")),
    )

    assert apply_regex_rules("vw golf", rules) == r"V\W"


def test_regex_rules_keep_sentinel_when_nothing_matches() -> None:
    """Without a changing rule the unmatched sentinel stays."""
    rules = (RegexRule("VOLKSWAGEN", re.compile("^vw")),)

    assert apply_regex_rules("Zeppelin", rules) == "OTHER"


def test_matcher_falls_back_to_rules_only_when_unmatched() -> None:
    """Rules are tried for unmatched labels, not for unknown ones."""
    matcher = CategoryMatcher(
        categories=_BRANDS,
        rules=(RegexRule("VOLKSWAGEN", re.compile(r"(?i)^vw\b.*")),),
    )

    assert matcher.match("vw golf") == "VOLKSWAGEN"
    assert matcher.match("-") == "UNKNOWN"
    assert matcher.match("bmw") == "BMW"


def test_match_categories_rewrites_column_in_place(executor: PartitionExecutor) -> None:
    """The label column is replaced and the schema is unchanged."""
    table = pa.table(
        {
            "id": ["1", "2", "3", "4"],
            "make": ["Mercedes-Benz 2019", "", "Zeppelin", None],
        }
    )

    output = match_categories(table, "make", CategoryMatcher(_BRANDS), executor)

    assert output.column_names == ["id", "make"]
    assert output.column("make").to_pylist() == ["MERCEDES", "UNKNOWN", "OTHER", "UNKNOWN"]
    assert output.column("id").to_pylist() == ["1", "2", "3", "4"]


def test_match_categories_missing_column_raises(executor: PartitionExecutor) -> None:
    """A missing label column is a transform error."""
    table = pa.table({"id": ["1"]})

    with pytest.raises(WidenTransformError, match="make"):
        match_categories(table, "make", CategoryMatcher(_BRANDS), executor)


def test_match_categories_keeps_schema_of_empty_table(executor: PartitionExecutor) -> None:
    """An empty dataset passes through with its schema."""
    table = pa.table({"id": pa.array([], pa.string()), "make": pa.array([], pa.string())})

    output = match_categories(table, "make", CategoryMatcher(_BRANDS), executor)

    assert output.schema == table.schema and output.num_rows == 0
