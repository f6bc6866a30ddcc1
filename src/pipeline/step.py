"""Pipeline step contract and per-step execution context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Mapping

import pyarrow as pa

from core.config import WidenConfig
from core.partition_executor import PartitionExecutor
from core.type_registry import TypeRegistry
from core.types import DataLevel, VariableConfig

SnapshotWriter = Callable[[str, pa.Table, Mapping[str, object]], None]


@dataclass
class StepContext:
    """Driver-side services handed to one step invocation.

    Attributes:
        registry: Shared type registry; writes only from the driver thread.
        executor: Partition executor for parallel passes.
        config: Runtime configuration.
        variables: Variables configured in the pipeline definition.
        diagnostics: Values recorded in the step's snapshot manifest.
        snapshot_writer: Persists extra snapshots; ``None`` when disabled.
    """

    registry: TypeRegistry
    executor: PartitionExecutor
    config: WidenConfig
    variables: tuple[VariableConfig, ...] = ()
    diagnostics: dict[str, object] = field(default_factory=dict)
    snapshot_writer: SnapshotWriter | None = None

    @property
    def write_intermediate(self) -> bool:
        """Whether intermediate snapshots are persisted in this run."""
        return self.snapshot_writer is not None

    def persist_snapshot(
        self,
        label: str,
        table: pa.Table,
        diagnostics: Mapping[str, object] | None = None,
    ) -> None:
        """Persist an extra snapshot; consumes one counter value when enabled."""
        if self.snapshot_writer is not None:
            self.snapshot_writer(label, table, dict(diagnostics or {}))


class PipelineStep(ABC):
    """One transformation over the working dataset.

    Subclasses set ``name`` and the data levels they accept and produce.
    An ``output_level`` of ``None`` keeps the incoming level.
    """

    name: str = ""
    input_level: DataLevel = DataLevel.ANY
    output_level: DataLevel | None = None

    @property
    def label(self) -> str:
        """Label used in intermediate artifact names."""
        return self.name

    @abstractmethod
    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        """Transform the dataset and return the step output."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
