"""Edit distance helpers for fuzzy category matching."""

from __future__ import annotations


def levenshtein_distance(left: str, right: str) -> int:
    """Return the number of single-character edits between two strings."""
    if left == right:
        return 0
    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)
    previous_row = list(range(len(right) + 1))
    for left_index, left_char in enumerate(left, 1):
        current_row = [left_index]
        for right_index, right_char in enumerate(right, 1):
            insertion = current_row[right_index - 1] + 1
            deletion = previous_row[right_index] + 1
            substitution = previous_row[right_index - 1] + (left_char != right_char)
            current_row.append(min(insertion, deletion, substitution))
        previous_row = current_row
    return previous_row[-1]


def normalized_levenshtein(left: str, right: str) -> float:
    """Return the edit distance scaled into [0, 1] by the longer length.

    Two empty strings have distance 0.
    """
    longest = max(len(left), len(right))
    if longest == 0:
        return 0.0
    return levenshtein_distance(left, right) / longest
