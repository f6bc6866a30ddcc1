"""Import orchestration from CSV source to persisted wide result.

This module resolves run settings, seeds the type registry with configured
variables, runs the step pipeline, and writes the final dataset.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import time

from core.config import WidenConfig, parse_output_format
from core.constants import ESCALATED_VARIABLES_KEY, RAW_VARIABLES_KEY
from core.errors import WidenConfigError, WidenRunSpecError
from core.logging_config import get_logger
from core.partition_executor import PartitionExecutor
from core.run_spec import RunSpec, load_run_spec
from core.type_registry import TypeRegistry
from core.types import ImportOptions, ImportResult, VariableConfig, VariableProvenance
from ingest.csv_reader import read_variable_csv
from pipeline.runner import PipelineRunner
from pipeline.step_catalog import build_steps
from store.dataset_writer import DatasetWriter

_LOGGER = get_logger(__name__)


class ImportApplication:
    """One import run bound to a pipeline definition."""

    def __init__(self, options: ImportOptions, config: WidenConfig) -> None:
        self._options = options
        self._run_spec = load_run_spec(options.pipeline_path)
        self._config = resolve_run_config(config, self._run_spec, options)
        self._write_intermediate = (
            options.write_intermediate
            if options.write_intermediate is not None
            else self._run_spec.defaults.write_intermediate
        )
        self._registry = TypeRegistry()
        self._executor = PartitionExecutor.from_config(self._config)
        self._writer = DatasetWriter.from_config(self._config)

    @property
    def config(self) -> WidenConfig:
        """Effective configuration after definition and option overrides."""
        return self._config

    @property
    def registry(self) -> TypeRegistry:
        """Type registry shared by every step of this run."""
        return self._registry

    def run(self) -> ImportResult:
        """Execute the import and return the result summary."""
        started_at = time.perf_counter()
        steps = build_steps(self._run_spec)
        dataset = read_variable_csv(Path(self._options.source_path), self._options.delimiter)
        seed_registry(self._registry, self._run_spec.variables)
        runner = PipelineRunner(
            registry=self._registry,
            executor=self._executor,
            config=self._config,
            writer=self._writer,
            steps=steps,
            variables=self._run_spec.variables,
        )
        run_result = runner.run(dataset, self._write_intermediate)
        result_dir = self._writer.write_result(run_result.dataset)
        _LOGGER.info(
            "import_completed",
            source_path=self._options.source_path,
            pipeline_path=self._options.pipeline_path,
            result_dir=str(result_dir),
            input_rows=dataset.num_rows,
            row_count=run_result.dataset.num_rows,
            column_count=run_result.dataset.num_columns,
            snapshot_count=run_result.snapshot_count,
            elapsed_seconds=round(time.perf_counter() - started_at, 3),
        )
        return ImportResult(
            result_dir=str(result_dir),
            row_count=run_result.dataset.num_rows,
            column_names=tuple(run_result.dataset.column_names),
            steps_executed=run_result.steps_executed,
        )


def run_import(options: ImportOptions, config: WidenConfig) -> ImportResult:
    """Import a key/value CSV export into a wide dataset.

    Args:
        options: Import request options.
        config: Runtime configuration.

    Returns:
        Result summary with the result directory.

    Raises:
        WidenRunSpecError: If the pipeline definition is invalid.
        WidenIngestError: If the source CSV cannot be read.
        WidenPipelineError: If the steps are misordered or a step fails.
        WidenStoreError: If artifacts cannot be written.
    """
    return ImportApplication(options, config).run()


def seed_registry(registry: TypeRegistry, variables: tuple[VariableConfig, ...]) -> None:
    """Register used configured variables under both pipeline keys."""
    for variable_config in variables:
        if not variable_config.use_variable:
            continue
        for key in (RAW_VARIABLES_KEY, ESCALATED_VARIABLES_KEY):
            registry.put(
                key,
                variable_config.name,
                variable_config.variable_type,
                VariableProvenance.CONFIGURED,
            )


def resolve_run_config(
    config: WidenConfig,
    run_spec: RunSpec,
    options: ImportOptions,
) -> WidenConfig:
    """Apply definition defaults, then explicit options, over environment config."""
    target_root = config.target_root
    if run_spec.defaults.target_root:
        target_root = _resolve_target_root(run_spec.defaults.target_root, run_spec.base_dir)
    if options.target_root:
        target_root = Path(options.target_root).expanduser().resolve()
    output_format = options.output_format or run_spec.defaults.output_format
    if output_format is not None:
        try:
            output_format = parse_output_format(output_format)
        except WidenConfigError as error:
            raise WidenRunSpecError(str(error)) from error
    return replace(
        config,
        target_root=target_root,
        output_format=output_format or config.output_format,
    )


def _resolve_target_root(raw_path: str, base_dir: Path) -> Path:
    path = Path(raw_path).expanduser()
    return path.resolve() if path.is_absolute() else (base_dir / path).resolve()
