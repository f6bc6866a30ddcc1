"""Fuzzy category matching transform.

This module maps free-text labels onto a canonical category list with
normalized edit distance, then retries unmatched labels with ordered
regular-expression rules. The column is rewritten in place.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Sequence

import pyarrow as pa

from core.constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_UNKNOWN_CATEGORY,
    DEFAULT_UNMATCHED_CATEGORY,
    PLACEHOLDER_CATEGORY_VALUES,
)
from core.errors import WidenTransformError
from core.partition_executor import PartitionExecutor
from transforms.reference_data import RegexRule
from transforms.string_distance import normalized_levenshtein

_NON_LETTER_PATTERN = re.compile(r"[\W\d_]+")


@dataclass(frozen=True)
class CategoryMatcher:
    """Matching parameters shared by all partitions.

    Attributes:
        categories: Canonical categories in reference order.
        rules: Ordered regex rules for the second pass.
        threshold: Maximum accepted normalized distance.
        unmatched_category: Sentinel for labels without an accepted match.
        unknown_category: Sentinel for empty or placeholder labels.
    """

    categories: tuple[str, ...]
    rules: tuple[RegexRule, ...] = ()
    threshold: float = DEFAULT_MATCH_THRESHOLD
    unmatched_category: str = DEFAULT_UNMATCHED_CATEGORY
    unknown_category: str = DEFAULT_UNKNOWN_CATEGORY

    def match(self, value: str | None) -> str:
        """Resolve one raw label through both matching passes."""
        category = match_category(
            value,
            self.categories,
            self.threshold,
            self.unmatched_category,
            self.unknown_category,
        )
        if category != self.unmatched_category:
            return category
        return apply_regex_rules(value, self.rules, self.unmatched_category)


def normalize_category_text(text: str) -> str:
    """Uppercase and strip everything that is not a letter."""
    return _NON_LETTER_PATTERN.sub("", text.upper())


def match_category(
    value: str | None,
    categories: Sequence[str],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    unmatched_category: str = DEFAULT_UNMATCHED_CATEGORY,
    unknown_category: str = DEFAULT_UNKNOWN_CATEGORY,
) -> str:
    """Pick the closest canonical category by normalized edit distance.

    Args:
        value: Raw label.
        categories: Canonical categories; the first wins ties.
        threshold: Maximum accepted distance in [0, 1].
        unmatched_category: Returned when no distance is within threshold.
        unknown_category: Returned for empty or placeholder labels.

    Returns:
        Selected category or a sentinel.
    """
    if value is None or value.strip() in PLACEHOLDER_CATEGORY_VALUES:
        return unknown_category
    normalized_value = normalize_category_text(value)
    if not normalized_value:
        return unknown_category
    best_category = unmatched_category
    best_score = 1.0
    for category in categories:
        score = normalized_levenshtein(normalized_value, normalize_category_text(category))
        if score < best_score:
            best_score = score
            best_category = category
    if best_score > threshold:
        return unmatched_category
    return best_category


def apply_regex_rules(
    value: str | None,
    rules: Sequence[RegexRule],
    unmatched_category: str = DEFAULT_UNMATCHED_CATEGORY,
) -> str:
    """Return the first rule substitution that changes the value.

    Matches are replaced with the rule category literally.
    """
    if value is None:
        return unmatched_category
    for rule in rules:
        replaced = rule.pattern.sub(lambda _match, category=rule.category: category, value)
        if replaced != value:
            return replaced
    return unmatched_category


def match_categories(
    table: pa.Table,
    column_name: str,
    matcher: CategoryMatcher,
    executor: PartitionExecutor,
) -> pa.Table:
    """Rewrite a label column with matched categories.

    Args:
        table: Input dataset.
        column_name: Column holding free-text labels.
        matcher: Matching parameters.
        executor: Partition executor for the per-row pass.

    Returns:
        Dataset with the same schema and the column replaced.

    Raises:
        WidenTransformError: If the column is missing or ambiguous.
    """
    column_index = table.schema.get_field_index(column_name)
    if column_index < 0:
        raise WidenTransformError(
            f"Category column '{column_name}' not found in dataset. "
            f"Available columns: {', '.join(table.column_names)}."
        )

    output_field = pa.field(column_name, pa.string())

    def match_partition(partition: pa.Table) -> pa.Table:
        labels = partition.column(column_index).cast(pa.string()).to_pylist()
        matched = pa.array([matcher.match(label) for label in labels], type=pa.string())
        return partition.set_column(column_index, output_field, matched)

    return executor.map_tables(
        table, match_partition, table.schema.set(column_index, output_field)
    )
