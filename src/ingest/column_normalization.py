"""Post-import column deduplication and row filtering.

This module turns the raw CSV import into a rectangular dataset with
one physical column per logical name and no rows lacking a record id.
"""

from __future__ import annotations

import re

import pyarrow as pa
import pyarrow.compute as pc

from core.constants import DUPLICATED_COLUMN_PATTERN, NULL_LITERAL, VAR_RECORD_ID
from core.errors import WidenTransformError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_DUPLICATED_COLUMN = re.compile(DUPLICATED_COLUMN_PATTERN)


def canonical_column_name(column_name: str) -> str:
    """Return the ``name_`` prefix of a ``name_<digits>`` column, else the name."""
    match = _DUPLICATED_COLUMN.fullmatch(column_name)
    return match.group(1) if match else column_name


def remove_duplicated_columns(table: pa.Table) -> pa.Table:
    """Keep the first column of each ``name_<digits>`` family.

    Kept columns are renamed to the shared prefix. When every prefix occurs
    once the table is returned unchanged.

    Args:
        table: Imported dataset.

    Returns:
        Dataset with one column per canonical name.
    """
    kept_indices: list[int] = []
    kept_names: list[str] = []
    seen_names: set[str] = set()
    for column_index, column_name in enumerate(table.column_names):
        canonical_name = canonical_column_name(column_name)
        if canonical_name in seen_names:
            continue
        seen_names.add(canonical_name)
        kept_indices.append(column_index)
        kept_names.append(canonical_name)
    if len(kept_indices) == table.num_columns:
        return table
    _LOGGER.info(
        "duplicated_columns_removed",
        input_columns=table.num_columns,
        output_columns=len(kept_indices),
    )
    return table.select(kept_indices).rename_columns(kept_names)


def remove_empty_records(table: pa.Table, id_column: str = VAR_RECORD_ID) -> pa.Table:
    """Drop rows whose id is null, empty, or the literal ``null``.

    Raises:
        WidenTransformError: If the id column is missing.
    """
    if id_column not in table.column_names:
        raise WidenTransformError(
            f"Record id column '{id_column}' not found in dataset. "
            f"Available columns: {', '.join(table.column_names)}."
        )
    record_ids = table.column(id_column).cast(pa.string())
    invalid_ids = pa.array([NULL_LITERAL, ""], type=pa.string())
    keep = pc.and_(pc.is_valid(record_ids), pc.invert(pc.is_in(record_ids, value_set=invalid_ids)))
    filtered = table.filter(keep)
    _LOGGER.info(
        "empty_records_removed",
        input_rows=table.num_rows,
        output_rows=filtered.num_rows,
    )
    return filtered
