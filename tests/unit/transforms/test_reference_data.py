"""Unit tests for reference table readers."""

from __future__ import annotations

import pytest

from core.errors import WidenReferenceDataError
from transforms.reference_data import read_reference_categories, read_regex_rules
from tests.fixture_paths import fixture_path


def test_read_reference_categories_uses_second_field() -> None:
    """Categories come from the second field; short lines are skipped."""
    categories = read_reference_categories(fixture_path("import/car_brands.csv"))

    assert categories == ("MERCEDES", "VOLKSWAGEN", "BMW", "TOYOTA")


def test_read_regex_rules_skips_invalid_patterns() -> None:
    """Rules keep file order and drop patterns that do not compile."""
    rules = read_regex_rules(fixture_path("import/brand_rules.csv"))

    assert [rule.category for rule in rules] == ["VOLKSWAGEN"]
    assert rules[0].pattern.pattern == r"(?i)^vw\b.*"


def test_missing_reference_file_is_fatal(tmp_path) -> None:
    """An unreadable reference file raises a reference data error."""
    with pytest.raises(WidenReferenceDataError, match="missing.csv"):
        read_reference_categories(tmp_path / "missing.csv")


def test_blank_lines_are_ignored(tmp_path) -> None:
    """Blank lines are neither categories nor warnings."""
    reference_file = tmp_path / "brands.csv"
    reference_file.write_text("\n1;AUDI\n\n2; SKODA \n", encoding="utf-8")

    assert read_reference_categories(reference_file) == ("AUDI", "SKODA")
