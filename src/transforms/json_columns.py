"""Two-pass JSON column discovery and materialization.

Variable columns may hold serialized JSON objects. The discovery pass
collects ``<column>_<field>`` names for every first-level scalar field
across all partitions; only after that barrier does the materialization
pass build rows against the extended, globally agreed schema.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Iterable, Iterator

import pyarrow as pa

from core.errors import WidenSchemaError
from core.logging_config import get_logger
from core.partition_executor import PartitionExecutor
from core.types import DatasetSchema

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class JsonExpansionResult:
    """Output of a full discovery and materialization run.

    Attributes:
        table: Materialized dataset with appended columns.
        schema: Extended schema of ``table``.
        discovered_columns: New column names in schema order.
        input_row_count: Rows before materialization.
        output_row_count: Rows after materialization.
        inconsistent_columns: Names produced in pass two but unknown to pass one.
    """

    table: pa.Table
    schema: DatasetSchema
    discovered_columns: tuple[str, ...]
    input_row_count: int
    output_row_count: int
    inconsistent_columns: tuple[str, ...]


@dataclass(frozen=True)
class _MaterializedPartition:
    table: pa.Table
    inconsistent_columns: frozenset[str]


def parse_json_object(value: object) -> dict[str, object] | None:
    """Parse a cell value as a JSON object.

    Numbers keep their source text. Anything that is not a string holding a
    JSON object, including parse failures, yields None.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = json.loads(
            value,
            parse_int=str,
            parse_float=str,
            parse_constant=_reject_constant,
        )
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def iter_scalar_fields(parsed: dict[str, object]) -> Iterator[tuple[str, str]]:
    """Yield ``(field, text)`` for first-level fields that are not objects or arrays."""
    for field_name, field_value in parsed.items():
        if isinstance(field_value, (dict, list)):
            continue
        yield field_name, _scalar_text(field_value)


def flattened_column_name(column_name: str, field_name: str) -> str:
    """Build the name of a column flattened out of a JSON field."""
    return f"{column_name}_{field_name}"


def discover_json_columns(
    table: pa.Table,
    variable_columns: Iterable[str],
    executor: PartitionExecutor,
) -> tuple[str, ...]:
    """Collect the global, sorted set of flattenable column names.

    Args:
        table: Input dataset.
        variable_columns: Columns that may hold JSON objects.
        executor: Partition executor for the parallel pass.

    Returns:
        Distinct candidate names in deterministic order.

    Raises:
        WidenSchemaError: If two source columns flatten to the same name.
    """
    eligible_columns = _eligible_columns(table, variable_columns)
    if not eligible_columns:
        return ()

    def discover_partition(partition: pa.Table) -> frozenset[tuple[str, str]]:
        sources: set[tuple[str, str]] = set()
        for column_name in eligible_columns:
            for value in partition.column(column_name).to_pylist():
                parsed = parse_json_object(value)
                if parsed is None:
                    continue
                for field_name, _ in iter_scalar_fields(parsed):
                    sources.add((flattened_column_name(column_name, field_name), column_name))
        return frozenset(sources)

    partition_sources = executor.map_partitions(table, discover_partition)
    source_columns: dict[str, set[str]] = {}
    for new_name, column_name in frozenset().union(*partition_sources):
        source_columns.setdefault(new_name, set()).add(column_name)
    _reject_ambiguous_names(source_columns)
    return tuple(sorted(source_columns))


def materialize_json_columns(
    table: pa.Table,
    variable_columns: Iterable[str],
    discovered_columns: tuple[str, ...],
    executor: PartitionExecutor,
    strict: bool = False,
) -> tuple[pa.Table, tuple[str, ...]]:
    """Append discovered columns and fill them from re-parsed values.

    Args:
        table: Input dataset.
        variable_columns: Columns that may hold JSON objects.
        discovered_columns: Output of ``discover_json_columns``.
        executor: Partition executor for the parallel pass.
        strict: Raise instead of warn on cross-pass inconsistencies.

    Returns:
        Materialized table and any inconsistent column names.

    Raises:
        WidenSchemaError: If a discovered name collides with an existing column,
            or on inconsistency when ``strict`` is set.
    """
    DatasetSchema.from_arrow(table.schema).extend(discovered_columns)
    eligible_columns = _eligible_columns(table, variable_columns)
    output_schema = pa.schema(
        list(table.schema) + [pa.field(name, pa.string()) for name in discovered_columns]
    )
    column_positions = {name: index for index, name in enumerate(discovered_columns)}

    def materialize_partition(partition: pa.Table) -> _MaterializedPartition:
        new_values: list[list[str | None]] = [
            [None] * partition.num_rows for _ in discovered_columns
        ]
        inconsistent: set[str] = set()
        for column_name in eligible_columns:
            for row_index, value in enumerate(partition.column(column_name).to_pylist()):
                parsed = parse_json_object(value)
                if parsed is None:
                    continue
                for field_name, text in iter_scalar_fields(parsed):
                    new_name = flattened_column_name(column_name, field_name)
                    position = column_positions.get(new_name)
                    if position is None:
                        inconsistent.add(new_name)
                        continue
                    new_values[position][row_index] = text
        arrays = list(partition.columns) + [
            pa.array(values, type=pa.string()) for values in new_values
        ]
        return _MaterializedPartition(
            table=pa.Table.from_arrays(arrays, schema=output_schema),
            inconsistent_columns=frozenset(inconsistent),
        )

    partitions = executor.map_partitions(table, materialize_partition)
    inconsistent_columns = tuple(
        sorted(frozenset().union(*(item.inconsistent_columns for item in partitions)))
    )
    if inconsistent_columns:
        _report_inconsistency(inconsistent_columns, strict)
    materialized = pa.concat_tables([item.table for item in partitions])
    return materialized, inconsistent_columns


def expand_json_columns(
    table: pa.Table,
    variable_columns: Iterable[str],
    executor: PartitionExecutor,
    strict: bool = False,
) -> JsonExpansionResult:
    """Run discovery, schema extension, and materialization in order.

    Args:
        table: Input dataset.
        variable_columns: Columns that may hold JSON objects.
        executor: Partition executor for both passes.
        strict: Raise instead of warn on cross-pass inconsistencies.

    Returns:
        Expansion result with the extended dataset and diagnostics.
    """
    variable_columns = tuple(variable_columns)
    discovered_columns = discover_json_columns(table, variable_columns, executor)
    schema = DatasetSchema.from_arrow(table.schema).extend(discovered_columns)
    _LOGGER.info(
        "json_columns_discovered",
        discovered_count=len(discovered_columns),
        discovered_columns=list(discovered_columns),
    )
    materialized, inconsistent_columns = materialize_json_columns(
        table, variable_columns, discovered_columns, executor, strict
    )
    return JsonExpansionResult(
        table=materialized,
        schema=schema,
        discovered_columns=discovered_columns,
        input_row_count=table.num_rows,
        output_row_count=materialized.num_rows,
        inconsistent_columns=inconsistent_columns,
    )


def _eligible_columns(table: pa.Table, variable_columns: Iterable[str]) -> tuple[str, ...]:
    """Variable columns present in the table, in table column order."""
    wanted = set(variable_columns)
    return tuple(name for name in table.column_names if name in wanted)


def _scalar_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _reject_constant(constant: str) -> object:
    raise ValueError(f"Unsupported JSON constant {constant}")


def _reject_ambiguous_names(source_columns: dict[str, set[str]]) -> None:
    ambiguous = sorted(
        f"{new_name} (from {', '.join(sorted(columns))})"
        for new_name, columns in source_columns.items()
        if len(columns) > 1
    )
    if ambiguous:
        raise WidenSchemaError(
            f"JSON fields of different columns flatten to the same column name: "
            f"{'; '.join(ambiguous)}. Rename the variables or their JSON fields."
        )


def _report_inconsistency(inconsistent_columns: tuple[str, ...], strict: bool) -> None:
    if strict:
        raise WidenSchemaError(
            "JSON fields found during materialization were not discovered before: "
            f"{', '.join(inconsistent_columns)}. Parsing is not deterministic across passes."
        )
    _LOGGER.warning(
        "json_column_not_discovered",
        columns=list(inconsistent_columns),
        action="dropped",
    )
