"""Reference table readers for enrichment steps.

Reference files are ``;``-separated text, one record per line, no header.
Malformed lines are skipped; an unreadable file is fatal for the step.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

from core.constants import REFERENCE_FIELD_SEPARATOR
from core.errors import WidenReferenceDataError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RegexRule:
    """One ordered re-matching rule.

    Attributes:
        category: Literal replacement written when the pattern matches.
        pattern: Compiled pattern applied to the raw value.
    """

    category: str
    pattern: re.Pattern[str]


def read_reference_lines(path: Path, min_fields: int) -> list[tuple[str, ...]]:
    """Read ``;``-separated records with at least ``min_fields`` fields.

    Args:
        path: Reference file path.
        min_fields: Minimum number of non-empty leading fields.

    Returns:
        Parsed records in file order.

    Raises:
        WidenReferenceDataError: If the file cannot be read.
    """
    return [fields for _, fields in _read_numbered_records(path, min_fields)]


def read_reference_categories(path: Path) -> tuple[str, ...]:
    """Read canonical categories from the second field of each line."""
    return tuple(fields[1] for fields in read_reference_lines(path, min_fields=2))


def read_regex_rules(path: Path) -> tuple[RegexRule, ...]:
    """Read ordered ``category;pattern`` rules, skipping invalid patterns."""
    rules: list[RegexRule] = []
    for line_number, fields in _read_numbered_records(path, min_fields=2):
        try:
            pattern = re.compile(fields[1])
        except re.error as error:
            _log_skipped_line(path, line_number, f"invalid pattern: {error}")
            continue
        rules.append(RegexRule(category=fields[0], pattern=pattern))
    return tuple(rules)


def _read_numbered_records(path: Path, min_fields: int) -> list[tuple[int, tuple[str, ...]]]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as error:
        raise WidenReferenceDataError(
            f"Failed to read reference data at {path}: {error}. "
            "Check the reference file path in the pipeline definition."
        ) from error
    records: list[tuple[int, tuple[str, ...]]] = []
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        fields = tuple(value.strip() for value in line.split(REFERENCE_FIELD_SEPARATOR))
        if len(fields) < min_fields or not all(fields[:min_fields]):
            _log_skipped_line(path, line_number, "too few fields")
            continue
        records.append((line_number, fields))
    return records


def _log_skipped_line(path: Path, line_number: int, reason: str) -> None:
    _LOGGER.warning(
        "reference_line_skipped",
        path=str(path),
        line_number=line_number,
        reason=reason,
    )
