"""Variable type analysis and escalation.

This module counts the types each variable appears with on key/value rows
and resolves one type per variable for the wide output schema.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping

import pyarrow as pa

from core.constants import NUMERIC_TYPE_ORDER, STRING_VARIABLE_TYPE, VAR_NAME, VAR_TYPE
from core.errors import WidenTransformError
from core.partition_executor import PartitionExecutor
from core.types import Variable, VariableConfig, VariableProvenance

TypeCounts = Counter[tuple[str, str]]


def count_variable_types(
    table: pa.Table,
    executor: PartitionExecutor,
    name_column: str = VAR_NAME,
    type_column: str = VAR_TYPE,
) -> TypeCounts:
    """Count ``(variable name, variable type)`` occurrences.

    Rows with a null variable name are ignored; a null type counts as string.

    Raises:
        WidenTransformError: If the name or type column is missing.
    """
    _require_columns(table, (name_column, type_column))

    def count_partition(partition: pa.Table) -> TypeCounts:
        names = partition.column(name_column).cast(pa.string()).to_pylist()
        types = partition.column(type_column).cast(pa.string()).to_pylist()
        return Counter(
            (name, variable_type or STRING_VARIABLE_TYPE)
            for name, variable_type in zip(names, types)
            if name
        )

    total: TypeCounts = Counter()
    for partition_counts in executor.map_partitions(table, count_partition):
        total.update(partition_counts)
    return total


def build_occurrence_table(counts: TypeCounts) -> pa.Table:
    """Render type counts as a table sorted by name and type."""
    rows = sorted(counts.items())
    return pa.table(
        {
            VAR_NAME: pa.array([name for (name, _), _ in rows], type=pa.string()),
            VAR_TYPE: pa.array([variable_type for (_, variable_type), _ in rows], type=pa.string()),
            "occurrences": pa.array([count for _, count in rows], type=pa.int64()),
        }
    )


def most_frequent_types(counts: TypeCounts) -> dict[str, str]:
    """Pick the most frequent type per variable, alphabetical on ties."""
    best: dict[str, tuple[int, str]] = {}
    for (name, variable_type), count in sorted(counts.items()):
        current = best.get(name)
        if current is None or count > current[0]:
            best[name] = (count, variable_type)
    return {name: variable_type for name, (_, variable_type) in best.items()}


def escalate_type(variable_types: Iterable[str]) -> str:
    """Resolve one type for a variable observed with several types.

    Mixed numeric types widen to the widest one; any other mix is a string.
    """
    distinct_types = set(variable_types)
    if len(distinct_types) == 1:
        return distinct_types.pop()
    if distinct_types and distinct_types <= set(NUMERIC_TYPE_ORDER):
        return max(distinct_types, key=NUMERIC_TYPE_ORDER.index)
    return STRING_VARIABLE_TYPE


def escalate_variable_types(
    counts: TypeCounts,
    configured: Iterable[VariableConfig] = (),
) -> dict[str, Variable]:
    """Build the escalated variable mapping.

    Configured variables override observed types; configured variables with
    ``use_variable`` unset are excluded.
    """
    observed: dict[str, set[str]] = {}
    for name, variable_type in counts:
        observed.setdefault(name, set()).add(variable_type)
    escalated = {
        name: Variable(name=name, variable_type=escalate_type(types))
        for name, types in observed.items()
    }
    for variable_config in configured:
        if not variable_config.use_variable:
            escalated.pop(variable_config.name, None)
            continue
        escalated[variable_config.name] = Variable(
            name=variable_config.name,
            variable_type=variable_config.variable_type,
            provenance=VariableProvenance.CONFIGURED,
        )
    return {name: escalated[name] for name in sorted(escalated)}


def build_variable_table(variables: Mapping[str, Variable]) -> pa.Table:
    """Render a variable mapping as a ``name_``/``var_type_`` table."""
    names = sorted(variables)
    return pa.table(
        {
            VAR_NAME: pa.array(names, type=pa.string()),
            VAR_TYPE: pa.array([variables[name].variable_type for name in names], type=pa.string()),
            "provenance": pa.array(
                [variables[name].provenance.value for name in names], type=pa.string()
            ),
        }
    )


def _require_columns(table: pa.Table, column_names: Iterable[str]) -> None:
    missing = [name for name in column_names if name not in table.column_names]
    if missing:
        raise WidenTransformError(
            f"Dataset is missing key/value columns: {', '.join(missing)}. "
            "Run this step on variable rows before aggregation."
        )
