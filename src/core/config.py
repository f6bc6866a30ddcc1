"""Runtime configuration model for Widen.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PARTITION_ROWS,
    DEFAULT_SAVE_MODE,
    DEFAULT_TARGET_ROOT,
    DEFAULT_WORKERS,
    SUPPORTED_OUTPUT_FORMATS,
    SUPPORTED_SAVE_MODES,
)
from core.errors import WidenConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class WidenConfig:
    """Validated runtime configuration.

    Attributes:
        target_root: Root directory for intermediate and result artifacts.
        output_format: Result format, ``parquet`` or ``csv``.
        save_mode: ``overwrite`` replaces existing artifacts, ``error`` refuses.
        workers: Number of worker threads for partition passes.
        partition_rows: Maximum rows per partition.
        strict_consistency: Raise instead of warn on cross-pass inconsistencies.
    """

    target_root: Path
    output_format: str
    save_mode: str
    workers: int
    partition_rows: int
    strict_consistency: bool

    @classmethod
    def from_env(cls) -> "WidenConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            WidenConfigError: If environment values are invalid.
        """
        target_root_value = os.getenv("WIDEN_TARGET_ROOT", str(DEFAULT_TARGET_ROOT))
        output_format = _parse_choice(
            "WIDEN_OUTPUT_FORMAT",
            os.getenv("WIDEN_OUTPUT_FORMAT", DEFAULT_OUTPUT_FORMAT),
            SUPPORTED_OUTPUT_FORMATS,
        )
        save_mode = _parse_choice(
            "WIDEN_SAVE_MODE",
            os.getenv("WIDEN_SAVE_MODE", DEFAULT_SAVE_MODE),
            SUPPORTED_SAVE_MODES,
        )
        workers = _parse_positive_int(
            "WIDEN_WORKERS", os.getenv("WIDEN_WORKERS", str(DEFAULT_WORKERS))
        )
        partition_rows = _parse_positive_int(
            "WIDEN_PARTITION_ROWS",
            os.getenv("WIDEN_PARTITION_ROWS", str(DEFAULT_PARTITION_ROWS)),
        )
        strict_consistency = _parse_bool(
            "WIDEN_STRICT_CONSISTENCY", os.getenv("WIDEN_STRICT_CONSISTENCY", "false")
        )
        return cls(
            target_root=Path(target_root_value).expanduser().resolve(),
            output_format=output_format,
            save_mode=save_mode,
            workers=workers,
            partition_rows=partition_rows,
            strict_consistency=strict_consistency,
        )


def parse_output_format(raw_value: str) -> str:
    """Validate an output format supplied outside the environment."""
    return _parse_choice("output format", raw_value, SUPPORTED_OUTPUT_FORMATS)


def _parse_choice(field_name: str, raw_value: str, choices: tuple[str, ...]) -> str:
    """Parse a value restricted to a fixed set of choices.

    Raises:
        WidenConfigError: If value is not one of the choices.
    """
    normalized_value = raw_value.strip().lower()
    if normalized_value in choices:
        return normalized_value
    raise WidenConfigError(
        f"Invalid {field_name} value: expected one of {', '.join(choices)}, got '{raw_value}'."
    )


def _parse_positive_int(field_name: str, raw_value: str) -> int:
    """Parse a strictly positive integer environment value.

    Args:
        field_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        WidenConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise WidenConfigError(
            f"Invalid {field_name} value: expected integer, got '{raw_value}'. "
            f"Set {field_name} to a numeric value."
        ) from error
    if value < 1:
        raise WidenConfigError(
            f"Invalid {field_name} value: expected at least 1, got {value}."
        )
    return value


def _parse_bool(field_name: str, raw_value: str) -> bool:
    normalized_value = raw_value.strip().lower()
    if normalized_value in _TRUE_VALUES:
        return True
    if normalized_value in _FALSE_VALUES:
        return False
    raise WidenConfigError(
        f"Invalid {field_name} value: expected true/false, got '{raw_value}'."
    )
