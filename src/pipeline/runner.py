"""Sequential step runner with numbered intermediate snapshots.

Steps run strictly in registration order on the driver thread. Each step may
parallelize internally, but registry writes happen only between steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import time
from typing import Mapping, Sequence

import pyarrow as pa

from core.config import WidenConfig
from core.errors import WidenPipelineError, WidenStepError
from core.logging_config import get_logger
from core.partition_executor import PartitionExecutor
from core.type_registry import TypeRegistry
from core.types import DataLevel, VariableConfig
from pipeline.step import PipelineStep, StepContext
from store.dataset_writer import DatasetWriter

_LOGGER = get_logger(__name__)


class RunnerState(str, Enum):
    """Runner lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"


class SnapshotCounter:
    """Monotonic counter naming intermediate snapshots within one run."""

    def __init__(self, start: int = 1) -> None:
        self._next_value = start

    def next(self) -> int:
        value = self._next_value
        self._next_value += 1
        return value


@dataclass(frozen=True)
class PipelineRunResult:
    """Final dataset and bookkeeping from one runner invocation."""

    dataset: pa.Table
    steps_executed: tuple[str, ...]
    snapshot_count: int


class PipelineRunner:
    """Run registered steps in order over one dataset."""

    def __init__(
        self,
        registry: TypeRegistry,
        executor: PartitionExecutor,
        config: WidenConfig,
        writer: DatasetWriter,
        steps: Sequence[PipelineStep] = (),
        variables: tuple[VariableConfig, ...] = (),
        initial_level: DataLevel = DataLevel.ROW,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._config = config
        self._writer = writer
        self._steps: list[PipelineStep] = list(steps)
        self._variables = variables
        self._initial_level = initial_level
        self._state = RunnerState.IDLE
        self._step_index: int | None = None

    @property
    def state(self) -> RunnerState:
        """Current lifecycle state."""
        return self._state

    @property
    def step_index(self) -> int | None:
        """Zero-based index of the running step, ``None`` when idle."""
        return self._step_index

    @property
    def steps(self) -> tuple[PipelineStep, ...]:
        """Registered steps in execution order."""
        return tuple(self._steps)

    def register(self, step: PipelineStep) -> None:
        """Append a step to the execution order.

        Raises:
            WidenPipelineError: If the runner is currently running.
        """
        if self._state is RunnerState.RUNNING:
            raise WidenPipelineError(
                f"Cannot register step '{step.name}' while the pipeline is running."
            )
        self._steps.append(step)

    def validate_levels(self) -> DataLevel:
        """Check every step accepts the data level produced before it.

        Returns:
            Data level of the final output.

        Raises:
            WidenPipelineError: If a step expects a different data level.
        """
        level = self._initial_level
        for step_index, step in enumerate(self._steps):
            if step.input_level is not DataLevel.ANY and step.input_level is not level:
                raise WidenPipelineError(
                    f"Step {step_index} '{step.name}' expects {step.input_level.value}-level "
                    f"data but receives {level.value}-level data. Reorder the pipeline steps."
                )
            if step.output_level is not None:
                level = step.output_level
        return level

    def run(self, dataset: pa.Table, write_intermediate: bool = False) -> PipelineRunResult:
        """Execute every registered step once, in order.

        Args:
            dataset: Input dataset.
            write_intermediate: Persist each step output as a numbered snapshot.

        Returns:
            Final dataset and run bookkeeping.

        Raises:
            WidenPipelineError: If called re-entrantly or levels are invalid.
            WidenStepError: If a step fails; no further steps run.
        """
        if self._state is RunnerState.RUNNING:
            raise WidenPipelineError(
                f"Pipeline is already running step {self._step_index}; "
                "wait for the current run to finish."
            )
        self.validate_levels()
        self._state = RunnerState.RUNNING
        counter = SnapshotCounter()
        try:
            for step_index, step in enumerate(self._steps):
                self._step_index = step_index
                dataset = self._run_step(step_index, step, dataset, counter, write_intermediate)
            steps_executed = tuple(step.name for step in self._steps)
            snapshot_count = counter.next() - 1
        finally:
            self._state = RunnerState.IDLE
            self._step_index = None
        _LOGGER.info(
            "pipeline_completed",
            step_count=len(steps_executed),
            snapshot_count=snapshot_count,
            row_count=dataset.num_rows,
        )
        return PipelineRunResult(
            dataset=dataset,
            steps_executed=steps_executed,
            snapshot_count=snapshot_count,
        )

    def _run_step(
        self,
        step_index: int,
        step: PipelineStep,
        dataset: pa.Table,
        counter: SnapshotCounter,
        write_intermediate: bool,
    ) -> pa.Table:
        context = StepContext(
            registry=self._registry,
            executor=self._executor,
            config=self._config,
            variables=self._variables,
            snapshot_writer=self._snapshot_writer(counter) if write_intermediate else None,
        )
        started_at = time.perf_counter()
        try:
            output = step.run(dataset, context)
            if write_intermediate:
                self._writer.write_intermediate(
                    output, counter.next(), step.label, context.diagnostics
                )
        except Exception as error:
            _LOGGER.error(
                "pipeline_step_failed",
                step_index=step_index,
                step_name=step.name,
                error_type=type(error).__name__,
                error=str(error),
            )
            raise WidenStepError(
                step_index,
                step.name,
                f"Pipeline step {step_index} '{step.name}' failed: {error}",
            ) from error
        _LOGGER.info(
            "pipeline_step_completed",
            step_index=step_index,
            step_name=step.name,
            input_rows=dataset.num_rows,
            output_rows=output.num_rows,
            output_columns=output.num_columns,
            elapsed_seconds=round(time.perf_counter() - started_at, 3),
        )
        return output

    def _snapshot_writer(self, counter: SnapshotCounter):
        def write_snapshot(
            label: str, table: pa.Table, diagnostics: Mapping[str, object]
        ) -> None:
            self._writer.write_intermediate(table, counter.next(), label, diagnostics)

        return write_snapshot
