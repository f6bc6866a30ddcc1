"""CSV import of key/value variable exports.

All columns are read as strings so values reach the pipeline unchanged.
Repeated header names are made unique by appending the column position,
leaving the ``name_<digits>`` families to the deduplication step.
"""

from __future__ import annotations

import csv
from pathlib import Path

import pyarrow as pa
import pyarrow.csv as pa_csv

from core.constants import DEFAULT_INPUT_DELIMITER
from core.errors import WidenIngestError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def read_variable_csv(source_path: Path, delimiter: str = DEFAULT_INPUT_DELIMITER) -> pa.Table:
    """Read a CSV export into a string-typed table.

    Args:
        source_path: CSV file with a header row.
        delimiter: Single-character field delimiter.

    Returns:
        Imported table.

    Raises:
        WidenIngestError: If the file is missing, empty, or malformed.
    """
    if len(delimiter) != 1:
        raise WidenIngestError(
            f"Invalid CSV delimiter '{delimiter}': expected a single character."
        )
    header = _read_header(source_path, delimiter)
    column_names = make_unique_column_names(header)
    try:
        table = pa_csv.read_csv(
            source_path,
            read_options=pa_csv.ReadOptions(column_names=column_names, skip_rows=1),
            parse_options=pa_csv.ParseOptions(delimiter=delimiter),
            convert_options=pa_csv.ConvertOptions(
                column_types={name: pa.string() for name in column_names},
                strings_can_be_null=False,
            ),
        )
    except (OSError, pa.ArrowInvalid) as error:
        raise WidenIngestError(
            f"Failed to parse CSV source at {source_path}: {error}. "
            "Check the delimiter and that every row has the header's column count."
        ) from error
    _LOGGER.info(
        "csv_imported",
        source_path=str(source_path),
        row_count=table.num_rows,
        column_count=table.num_columns,
    )
    return table


def make_unique_column_names(header: list[str]) -> list[str]:
    """Suffix repeated names with their zero-based column position."""
    seen_names: set[str] = set()
    unique_names: list[str] = []
    for position, name in enumerate(header):
        unique_name = name
        while unique_name in seen_names:
            unique_name = f"{unique_name}{position}"
        seen_names.add(unique_name)
        unique_names.append(unique_name)
    return unique_names


def _read_header(source_path: Path, delimiter: str) -> list[str]:
    if not source_path.is_file():
        raise WidenIngestError(
            f"Failed to read source at {source_path}: file does not exist. "
            "Provide an existing CSV file."
        )
    try:
        with source_path.open(encoding="utf-8", newline="") as source_file:
            header = next(csv.reader(source_file, delimiter=delimiter), None)
    except (OSError, UnicodeDecodeError, csv.Error) as error:
        raise WidenIngestError(f"Failed to read CSV header at {source_path}: {error}.") from error
    if not header:
        raise WidenIngestError(
            f"CSV source at {source_path} has no header row. Export the file with headers."
        )
    return header
