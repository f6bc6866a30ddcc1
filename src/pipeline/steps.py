"""Concrete import steps.

Each step wraps one transform from ``ingest`` or ``transforms`` and owns the
registry reads and writes around it. Registry writes happen here, on the
driver thread, after any parallel pass has returned.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pyarrow as pa

from core.constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_UNKNOWN_CATEGORY,
    DEFAULT_UNMATCHED_CATEGORY,
    ESCALATED_VARIABLES_KEY,
    FLATTENABLE_VARIABLE_TYPES,
    KEY_VALUE_COLUMNS,
    RAW_VARIABLES_KEY,
    STRING_VARIABLE_TYPE,
    VAR_NAME,
    VAR_RECORD_ID,
    VAR_TYPE,
)
from core.types import DataLevel, Variable, VariableProvenance
from ingest.column_normalization import remove_duplicated_columns, remove_empty_records
from pipeline.step import PipelineStep, StepContext
from transforms.category_matching import CategoryMatcher, match_categories
from transforms.json_columns import expand_json_columns
from transforms.record_aggregation import aggregate_records
from transforms.reference_data import read_reference_categories, read_regex_rules
from transforms.variable_pivot import add_variable_columns
from transforms.variable_types import (
    build_occurrence_table,
    build_variable_table,
    count_variable_types,
    escalate_variable_types,
    most_frequent_types,
)


class DeduplicateColumnsStep(PipelineStep):
    """Collapse ``name_<digits>`` column families to one column."""

    name = "deduplicate_columns"

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        output = remove_duplicated_columns(dataset)
        context.diagnostics["removed_columns"] = sorted(
            set(dataset.column_names) - set(output.column_names)
        )
        return output


class FilterEmptyRecordsStep(PipelineStep):
    """Drop rows without a usable record id."""

    name = "filter_empty_records"

    def __init__(self, id_column: str = VAR_RECORD_ID) -> None:
        self.id_column = id_column

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        output = remove_empty_records(dataset, self.id_column)
        context.diagnostics["dropped_rows"] = dataset.num_rows - output.num_rows
        return output


class VariableTypesStep(PipelineStep):
    """Record the observed type of every variable in the raw mapping."""

    name = "variable_types"
    input_level = DataLevel.ROW

    def __init__(self, name_column: str = VAR_NAME, type_column: str = VAR_TYPE) -> None:
        self.name_column = name_column
        self.type_column = type_column

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        counts = count_variable_types(
            dataset, context.executor, self.name_column, self.type_column
        )
        context.persist_snapshot("variables_types", build_occurrence_table(counts))
        raw_variables = dict(context.registry.get(RAW_VARIABLES_KEY).variables)
        for name, variable_type in most_frequent_types(counts).items():
            existing = raw_variables.get(name)
            if existing is not None and existing.provenance is VariableProvenance.CONFIGURED:
                continue
            raw_variables[name] = Variable(name=name, variable_type=variable_type)
        context.registry.set(RAW_VARIABLES_KEY, raw_variables)
        context.diagnostics["variable_count"] = len(raw_variables)
        return dataset


class TypeEscalationStep(PipelineStep):
    """Resolve one type per variable into the escalated mapping."""

    name = "type_escalation"
    input_level = DataLevel.ROW

    def __init__(self, name_column: str = VAR_NAME, type_column: str = VAR_TYPE) -> None:
        self.name_column = name_column
        self.type_column = type_column

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        counts = count_variable_types(
            dataset, context.executor, self.name_column, self.type_column
        )
        escalated = dict(context.registry.get(ESCALATED_VARIABLES_KEY).variables)
        escalated.update(escalate_variable_types(counts, context.variables))
        context.registry.set(ESCALATED_VARIABLES_KEY, escalated)
        context.persist_snapshot("variable_types_escalated", build_variable_table(escalated))
        context.diagnostics["variable_count"] = len(escalated)
        return dataset


class AddVariableColumnsStep(PipelineStep):
    """Pivot key/value rows into one column per escalated variable."""

    name = "add_variable_columns"
    input_level = DataLevel.ROW

    def __init__(
        self,
        value_column: str | None = None,
        registry_key: str = ESCALATED_VARIABLES_KEY,
    ) -> None:
        self.value_column = value_column
        self.registry_key = registry_key

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        snapshot = context.registry.broadcast(self.registry_key)
        output = add_variable_columns(
            dataset, snapshot.type_map(), value_column=self.value_column
        )
        context.diagnostics["added_columns"] = output.num_columns - dataset.num_columns
        return output


class AggregateToRecordStep(PipelineStep):
    """Collapse variable rows into one row per record."""

    name = "aggregate_to_record"
    input_level = DataLevel.ROW
    output_level = DataLevel.RECORD

    def __init__(
        self,
        record_id_column: str = VAR_RECORD_ID,
        drop_columns: Iterable[str] = KEY_VALUE_COLUMNS,
    ) -> None:
        self.record_id_column = record_id_column
        self.drop_columns = tuple(drop_columns)

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        output = aggregate_records(
            dataset, context.executor, self.record_id_column, self.drop_columns
        )
        context.diagnostics["record_count"] = output.num_rows
        return output


class CreateColumnsFromJsonStep(PipelineStep):
    """Flatten first-level JSON object fields into new string columns."""

    name = "columns_from_json"

    def __init__(
        self,
        registry_key: str = ESCALATED_VARIABLES_KEY,
        flatten_types: Iterable[str] = FLATTENABLE_VARIABLE_TYPES,
    ) -> None:
        self.registry_key = registry_key
        self.flatten_types = tuple(flatten_types)

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        snapshot = context.registry.broadcast(self.registry_key)
        variable_columns = [
            name
            for name, variable in snapshot.variables.items()
            if variable.variable_type in self.flatten_types
        ]
        result = expand_json_columns(
            dataset,
            variable_columns,
            context.executor,
            strict=context.config.strict_consistency,
        )
        for column_name in result.discovered_columns:
            context.registry.put(self.registry_key, column_name, STRING_VARIABLE_TYPE)
        context.diagnostics.update(
            input_row_count=result.input_row_count,
            output_row_count=result.output_row_count,
            discovered_columns=list(result.discovered_columns),
            inconsistent_columns=list(result.inconsistent_columns),
        )
        context.persist_snapshot(
            "variable_types_after_json_escalated",
            build_variable_table(context.registry.get(self.registry_key).variables),
        )
        return result.table


class MatchCategoriesStep(PipelineStep):
    """Replace free-text labels with canonical reference categories."""

    name = "match_categories"

    def __init__(
        self,
        column: str,
        reference_file: Path,
        rules_file: Path | None = None,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        unmatched_category: str = DEFAULT_UNMATCHED_CATEGORY,
        unknown_category: str = DEFAULT_UNKNOWN_CATEGORY,
    ) -> None:
        self.column = column
        self.reference_file = reference_file
        self.rules_file = rules_file
        self.threshold = threshold
        self.unmatched_category = unmatched_category
        self.unknown_category = unknown_category

    @property
    def label(self) -> str:
        return f"{self.name}_{self.column}"

    def run(self, dataset: pa.Table, context: StepContext) -> pa.Table:
        matcher = CategoryMatcher(
            categories=read_reference_categories(self.reference_file),
            rules=read_regex_rules(self.rules_file) if self.rules_file else (),
            threshold=self.threshold,
            unmatched_category=self.unmatched_category,
            unknown_category=self.unknown_category,
        )
        output = match_categories(dataset, self.column, matcher, context.executor)
        matched_labels = output.column(self.column).to_pylist()
        context.diagnostics.update(
            category_count=len(matcher.categories),
            rule_count=len(matcher.rules),
            unmatched_rows=matched_labels.count(self.unmatched_category),
            unknown_rows=matched_labels.count(self.unknown_category),
        )
        return output
