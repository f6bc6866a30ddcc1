"""Type-safe field parsing helpers for pipeline definitions.

This module centralizes primitive parsing so step factories can stay
concise and produce consistent validation errors across CLI and SDK flows.
"""

from __future__ import annotations

from typing import Mapping

from core.errors import WidenRunSpecError


def required_string(args: Mapping[str, object], field_name: str) -> str:
    """Read a required string field from a step definition."""
    value = optional_string(args, field_name)
    if value is None:
        raise WidenRunSpecError(f"Pipeline step is missing required field '{field_name}'.")
    return value


def optional_string(args: Mapping[str, object], field_name: str) -> str | None:
    """Read an optional string field from a step definition."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    raise WidenRunSpecError(f"Pipeline field '{field_name}' must be a string when provided.")


def string_with_default(args: Mapping[str, object], field_name: str, default_value: str) -> str:
    """Read a string field falling back to a default."""
    value = optional_string(args, field_name)
    return default_value if value is None else value


def optional_float(args: Mapping[str, object], field_name: str) -> float | None:
    """Read an optional numeric field from a step definition."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool):
        raise WidenRunSpecError(f"Pipeline field '{field_name}' must be numeric.")
    if isinstance(value, (int, float)):
        return float(value)
    raise WidenRunSpecError(f"Pipeline field '{field_name}' must be numeric.")


def float_with_default(args: Mapping[str, object], field_name: str, default_value: float) -> float:
    """Read a numeric field while preserving explicit zero values."""
    value = optional_float(args, field_name)
    return default_value if value is None else value


def optional_bool(
    args: Mapping[str, object],
    field_name: str,
    default_value: bool,
) -> bool:
    """Read an optional boolean field from a definition mapping."""
    value = args.get(field_name)
    if value is None:
        return default_value
    if isinstance(value, bool):
        return value
    raise WidenRunSpecError(f"Pipeline field '{field_name}' must be true/false.")


def string_tuple(
    args: Mapping[str, object],
    field_name: str,
    default_value: tuple[str, ...],
) -> tuple[str, ...]:
    """Read an optional list of strings from a step definition."""
    value = args.get(field_name)
    if value is None:
        return default_value
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise WidenRunSpecError(f"Pipeline field '{field_name}' must be a list of strings.")


def reject_unknown_fields(
    args: Mapping[str, object],
    allowed_fields: set[str],
    context: str,
) -> None:
    """Fail on step arguments that the step does not understand."""
    unknown_fields = sorted(set(args) - allowed_fields)
    if unknown_fields:
        raise WidenRunSpecError(
            f"Unknown arguments for {context}: {', '.join(unknown_fields)}."
        )
