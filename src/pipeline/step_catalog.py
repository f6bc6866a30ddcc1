"""Closed catalog mapping pipeline definition step names to step objects.

Step arguments are validated here so a bad definition fails before any data
is read.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from core.constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_UNKNOWN_CATEGORY,
    DEFAULT_UNMATCHED_CATEGORY,
    ESCALATED_VARIABLES_KEY,
    FLATTENABLE_VARIABLE_TYPES,
    KEY_VALUE_COLUMNS,
    VAR_NAME,
    VAR_RECORD_ID,
    VAR_TYPE,
)
from core.errors import WidenRunSpecError
from core.run_spec import RunSpec, RunSpecStep
from core.run_spec_fields import (
    float_with_default,
    optional_string,
    reject_unknown_fields,
    required_string,
    string_tuple,
    string_with_default,
)
from core.types import DataLevel
from pipeline.step import PipelineStep
from pipeline.steps import (
    AddVariableColumnsStep,
    AggregateToRecordStep,
    CreateColumnsFromJsonStep,
    DeduplicateColumnsStep,
    FilterEmptyRecordsStep,
    MatchCategoriesStep,
    TypeEscalationStep,
    VariableTypesStep,
)

StepFactory = Callable[[Mapping[str, object], Path], PipelineStep]


@dataclass(frozen=True)
class StepDescription:
    """Catalog entry rendered by ``widen steps``."""

    name: str
    input_level: DataLevel
    output_level: DataLevel | None
    summary: str


def build_steps(run_spec: RunSpec) -> tuple[PipelineStep, ...]:
    """Instantiate every step of a pipeline definition in order.

    Args:
        run_spec: Validated pipeline definition.

    Returns:
        Steps in execution order.

    Raises:
        WidenRunSpecError: If a step name or argument is invalid.
    """
    return tuple(
        build_step(step, run_spec.base_dir, step_index)
        for step_index, step in enumerate(run_spec.steps)
    )


def build_step(step: RunSpecStep, base_dir: Path, step_index: int = 0) -> PipelineStep:
    """Instantiate one catalog step from its definition entry."""
    factory = _STEP_FACTORIES.get(step.step)
    if factory is None:
        raise WidenRunSpecError(
            f"Unsupported pipeline step '{step.step}' at pipeline step #{step_index + 1}. "
            f"Supported steps: {', '.join(sorted(_STEP_FACTORIES))}."
        )
    return factory(step.args, base_dir)


def describe_steps() -> tuple[StepDescription, ...]:
    """Describe every catalog step with its data levels."""
    descriptions = []
    for step_class in _STEP_CLASSES:
        docstring = step_class.__doc__ or ""
        descriptions.append(
            StepDescription(
                name=step_class.name,
                input_level=step_class.input_level,
                output_level=step_class.output_level,
                summary=docstring.strip().splitlines()[0] if docstring.strip() else "",
            )
        )
    return tuple(descriptions)


def resolve_path(raw_path: str, base_dir: Path) -> Path:
    """Resolve a definition path relative to the definition file."""
    path = Path(raw_path).expanduser()
    return path if path.is_absolute() else (base_dir / path).resolve()


def _build_deduplicate_columns(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, set(), DeduplicateColumnsStep.name)
    return DeduplicateColumnsStep()


def _build_filter_empty_records(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"id_column"}, FilterEmptyRecordsStep.name)
    return FilterEmptyRecordsStep(string_with_default(args, "id_column", VAR_RECORD_ID))


def _build_variable_types(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"name_column", "type_column"}, VariableTypesStep.name)
    return VariableTypesStep(
        name_column=string_with_default(args, "name_column", VAR_NAME),
        type_column=string_with_default(args, "type_column", VAR_TYPE),
    )


def _build_type_escalation(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"name_column", "type_column"}, TypeEscalationStep.name)
    return TypeEscalationStep(
        name_column=string_with_default(args, "name_column", VAR_NAME),
        type_column=string_with_default(args, "type_column", VAR_TYPE),
    )


def _build_add_variable_columns(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"value_column", "registry_key"}, AddVariableColumnsStep.name)
    return AddVariableColumnsStep(
        value_column=optional_string(args, "value_column"),
        registry_key=string_with_default(args, "registry_key", ESCALATED_VARIABLES_KEY),
    )


def _build_aggregate_to_record(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"record_id_column", "drop_columns"}, AggregateToRecordStep.name)
    return AggregateToRecordStep(
        record_id_column=string_with_default(args, "record_id_column", VAR_RECORD_ID),
        drop_columns=string_tuple(args, "drop_columns", KEY_VALUE_COLUMNS),
    )


def _build_columns_from_json(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(args, {"registry_key", "flatten_types"}, CreateColumnsFromJsonStep.name)
    return CreateColumnsFromJsonStep(
        registry_key=string_with_default(args, "registry_key", ESCALATED_VARIABLES_KEY),
        flatten_types=string_tuple(args, "flatten_types", FLATTENABLE_VARIABLE_TYPES),
    )


def _build_match_categories(args: Mapping[str, object], base_dir: Path) -> PipelineStep:
    reject_unknown_fields(
        args,
        {
            "column",
            "reference_file",
            "rules_file",
            "threshold",
            "unmatched_category",
            "unknown_category",
        },
        MatchCategoriesStep.name,
    )
    threshold = float_with_default(args, "threshold", DEFAULT_MATCH_THRESHOLD)
    if not 0.0 <= threshold <= 1.0:
        raise WidenRunSpecError(
            f"Pipeline field 'threshold' must be between 0 and 1, got {threshold}."
        )
    rules_file = optional_string(args, "rules_file")
    return MatchCategoriesStep(
        column=required_string(args, "column"),
        reference_file=resolve_path(required_string(args, "reference_file"), base_dir),
        rules_file=resolve_path(rules_file, base_dir) if rules_file else None,
        threshold=threshold,
        unmatched_category=string_with_default(
            args, "unmatched_category", DEFAULT_UNMATCHED_CATEGORY
        ),
        unknown_category=string_with_default(args, "unknown_category", DEFAULT_UNKNOWN_CATEGORY),
    )


_STEP_CLASSES: tuple[type[PipelineStep], ...] = (
    DeduplicateColumnsStep,
    FilterEmptyRecordsStep,
    VariableTypesStep,
    TypeEscalationStep,
    AddVariableColumnsStep,
    AggregateToRecordStep,
    CreateColumnsFromJsonStep,
    MatchCategoriesStep,
)

_STEP_FACTORIES: dict[str, StepFactory] = {
    DeduplicateColumnsStep.name: _build_deduplicate_columns,
    FilterEmptyRecordsStep.name: _build_filter_empty_records,
    VariableTypesStep.name: _build_variable_types,
    TypeEscalationStep.name: _build_type_escalation,
    AddVariableColumnsStep.name: _build_add_variable_columns,
    AggregateToRecordStep.name: _build_aggregate_to_record,
    CreateColumnsFromJsonStep.name: _build_columns_from_json,
    MatchCategoriesStep.name: _build_match_categories,
}
