"""Data-parallel execution over table partitions.

This module slices Arrow tables into contiguous partitions and maps
per-partition work over a thread pool. Results keep partition order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

import pyarrow as pa

from core.config import WidenConfig

ResultT = TypeVar("ResultT")


class PartitionExecutor:
    """Runs independent per-partition functions in parallel."""

    def __init__(self, workers: int, partition_rows: int) -> None:
        self._workers = workers
        self._partition_rows = partition_rows

    @classmethod
    def from_config(cls, config: WidenConfig) -> "PartitionExecutor":
        """Build an executor sized by runtime configuration."""
        return cls(workers=config.workers, partition_rows=config.partition_rows)

    def partitions(self, table: pa.Table) -> list[pa.Table]:
        """Split a table into zero-copy contiguous slices.

        An empty table yields a single empty partition so callers always
        see the schema.
        """
        if table.num_rows == 0:
            return [table]
        return [
            table.slice(offset, self._partition_rows)
            for offset in range(0, table.num_rows, self._partition_rows)
        ]

    def map_partitions(
        self,
        table: pa.Table,
        function: Callable[[pa.Table], ResultT],
    ) -> list[ResultT]:
        """Apply a function to every partition and return ordered results.

        Args:
            table: Input table.
            function: Pure per-partition function; must not touch shared state.

        Returns:
            One result per partition, in partition order.
        """
        partitions = self.partitions(table)
        if self._workers == 1 or len(partitions) == 1:
            return [function(partition) for partition in partitions]
        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            return list(pool.map(function, partitions))

    def map_tables(
        self,
        table: pa.Table,
        function: Callable[[pa.Table], pa.Table],
        schema: pa.Schema,
    ) -> pa.Table:
        """Apply a row-preserving function and concatenate the outputs."""
        outputs = self.map_partitions(table, function)
        return pa.concat_tables(outputs).cast(schema) if outputs else schema.empty_table()
