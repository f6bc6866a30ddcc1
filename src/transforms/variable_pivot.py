"""Variable column expansion for key/value rows.

Each escalated variable becomes a column that carries the row's value when
the row describes that variable and null otherwise. Rows are aggregated
per record afterwards.
"""

from __future__ import annotations

from typing import Mapping

import pyarrow as pa
import pyarrow.compute as pc

from core.constants import VALUE_COLUMN_BY_TYPE, VAR_NAME, VAR_TEXT_VALUE
from core.errors import WidenTransformError
from core.types import DatasetSchema


def resolve_value_column(
    table: pa.Table,
    variable_type: str,
    value_column: str | None = None,
) -> str:
    """Pick the column holding values for a variable type.

    Raises:
        WidenTransformError: If neither the typed nor the text column exists.
    """
    candidates = (
        (value_column,)
        if value_column
        else (VALUE_COLUMN_BY_TYPE.get(variable_type, VAR_TEXT_VALUE), VAR_TEXT_VALUE)
    )
    for candidate in candidates:
        if candidate in table.column_names:
            return candidate
    raise WidenTransformError(
        f"No value column for variable type '{variable_type}': tried {', '.join(candidates)}."
    )


def add_variable_columns(
    table: pa.Table,
    variable_types: Mapping[str, str],
    name_column: str = VAR_NAME,
    value_column: str | None = None,
) -> pa.Table:
    """Append one string column per variable, sorted by variable name.

    Args:
        table: Key/value rows.
        variable_types: Variable name to type mapping.
        name_column: Column holding the variable name.
        value_column: Force a single value column for every type.

    Returns:
        Table with the variable columns appended.

    Raises:
        WidenTransformError: If required columns are missing.
        WidenSchemaError: If a variable name collides with an existing column.
    """
    if name_column not in table.column_names:
        raise WidenTransformError(
            f"Variable name column '{name_column}' not found in dataset."
        )
    variable_names = tuple(sorted(variable_types))
    DatasetSchema.from_arrow(table.schema).extend(variable_names)
    names = table.column(name_column).cast(pa.string())
    empty_value = pa.scalar(None, type=pa.string())
    for variable_name in variable_names:
        source_column = resolve_value_column(table, variable_types[variable_name], value_column)
        values = table.column(source_column).cast(pa.string())
        is_variable_row = pc.fill_null(pc.equal(names, variable_name), False)
        table = table.append_column(
            pa.field(variable_name, pa.string()),
            pc.if_else(is_variable_row, values, empty_value),
        )
    return table
