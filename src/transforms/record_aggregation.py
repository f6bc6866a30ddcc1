"""Record-level aggregation of variable rows.

Rows sharing a record id are collapsed into one row. Each column is reduced
with ``merge_non_empty``, which is commutative and associative, so
partitions are reduced independently and merged on the driver.
"""

from __future__ import annotations

from typing import Iterable

import pyarrow as pa

from core.constants import KEY_VALUE_COLUMNS, VAR_RECORD_ID
from core.errors import WidenTransformError
from core.partition_executor import PartitionExecutor

PartialRecords = dict[object, list[str | None]]


def merge_non_empty(left: str | None, right: str | None) -> str | None:
    """Merge two values preferring non-empty strings.

    Null loses to anything, empty loses to non-empty, and two non-empty
    values resolve to the larger one so the result is order independent.
    """
    if left is None:
        return right
    if right is None:
        return left
    if not left:
        return right
    if not right:
        return left
    return max(left, right)


def aggregate_records(
    table: pa.Table,
    executor: PartitionExecutor,
    record_id_column: str = VAR_RECORD_ID,
    drop_columns: Iterable[str] = KEY_VALUE_COLUMNS,
) -> pa.Table:
    """Collapse variable rows into one row per record id.

    Args:
        table: Row-level dataset.
        executor: Partition executor for partial aggregation.
        record_id_column: Grouping column.
        drop_columns: Key/value columns removed before aggregation.

    Returns:
        Record-level dataset, record id first, records in first-seen order.

    Raises:
        WidenTransformError: If the record id column is missing.
    """
    if record_id_column not in table.column_names:
        raise WidenTransformError(
            f"Record id column '{record_id_column}' not found in dataset. "
            "Set 'record_id_column' on the aggregation step."
        )
    dropped = set(drop_columns) - {record_id_column}
    value_columns = [
        name for name in table.column_names if name != record_id_column and name not in dropped
    ]

    def reduce_partition(partition: pa.Table) -> PartialRecords:
        record_ids = partition.column(record_id_column).to_pylist()
        columns = [partition.column(name).cast(pa.string()).to_pylist() for name in value_columns]
        partial: PartialRecords = {}
        for row_index, record_id in enumerate(record_ids):
            row_values = [column[row_index] for column in columns]
            _merge_into(partial, record_id, row_values)
        return partial

    merged: PartialRecords = {}
    for partial in executor.map_partitions(table, reduce_partition):
        for record_id, row_values in partial.items():
            _merge_into(merged, record_id, row_values)
    record_id_type = table.schema.field(record_id_column).type
    arrays = [pa.array(list(merged), type=record_id_type)]
    for column_index in range(len(value_columns)):
        arrays.append(
            pa.array([values[column_index] for values in merged.values()], type=pa.string())
        )
    return pa.Table.from_arrays(arrays, names=[record_id_column, *value_columns])


def _merge_into(target: PartialRecords, record_id: object, row_values: list[str | None]) -> None:
    current = target.get(record_id)
    if current is None:
        target[record_id] = list(row_values)
        return
    for column_index, value in enumerate(row_values):
        current[column_index] = merge_non_empty(current[column_index], value)
