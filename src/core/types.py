"""Shared typed models.

This module defines immutable data models used by the registry, transforms,
pipeline, and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping

import pyarrow as pa

from core.constants import STRING_VARIABLE_TYPE
from core.errors import WidenSchemaError


class VariableProvenance(str, Enum):
    """Where a variable's registry entry came from."""

    CONFIGURED = "configured"
    DISCOVERED = "discovered"


class DataLevel(str, Enum):
    """Granularity of dataset rows consumed or produced by a step."""

    ROW = "row"
    RECORD = "record"
    ANY = "any"


@dataclass(frozen=True)
class Variable:
    """Registry entry for one logical attribute.

    Attributes:
        name: Unique variable name.
        variable_type: Declared or inferred type tag.
        provenance: Configured upfront or discovered during processing.
    """

    name: str
    variable_type: str
    provenance: VariableProvenance = VariableProvenance.DISCOVERED


@dataclass(frozen=True)
class VariableConfig:
    """Variable declared in a pipeline definition.

    Attributes:
        name: Variable name.
        variable_type: Declared type, overriding observed types.
        use_variable: Whether the variable is kept during escalation.
    """

    name: str
    variable_type: str = STRING_VARIABLE_TYPE
    use_variable: bool = True


@dataclass(frozen=True)
class ColumnField:
    """One named and typed column of a dataset schema."""

    name: str
    value_type: str = STRING_VARIABLE_TYPE


@dataclass(frozen=True)
class DatasetSchema:
    """Ordered column layout of a dataset snapshot.

    Attributes:
        fields: Columns in dataset order; names are unique.
    """

    fields: tuple[ColumnField, ...]

    def __post_init__(self) -> None:
        seen_names: set[str] = set()
        duplicated_names: list[str] = []
        for column in self.fields:
            if column.name in seen_names:
                duplicated_names.append(column.name)
            seen_names.add(column.name)
        if duplicated_names:
            raise WidenSchemaError(
                f"Duplicate column names in schema: {', '.join(sorted(set(duplicated_names)))}. "
                "Column names must be unique within a dataset."
            )

    @classmethod
    def from_arrow(cls, schema: pa.Schema) -> "DatasetSchema":
        """Build a schema value from an Arrow schema."""
        return cls(
            fields=tuple(
                ColumnField(name=arrow_field.name, value_type=_arrow_type_name(arrow_field.type))
                for arrow_field in schema
            )
        )

    @property
    def names(self) -> tuple[str, ...]:
        """Column names in order."""
        return tuple(column.name for column in self.fields)

    def extend(
        self,
        names: Iterable[str],
        value_type: str = STRING_VARIABLE_TYPE,
    ) -> "DatasetSchema":
        """Return a schema with new columns appended in the given order.

        Raises:
            WidenSchemaError: If a new name collides with an existing column.
        """
        new_fields = tuple(ColumnField(name=name, value_type=value_type) for name in names)
        return DatasetSchema(fields=self.fields + new_fields)


@dataclass(frozen=True)
class ImportOptions:
    """Import command options.

    Attributes:
        source_path: CSV file with key/value variable rows.
        pipeline_path: YAML pipeline definition.
        delimiter: Input CSV delimiter.
        write_intermediate: Override for intermediate snapshot persistence.
        output_format: Override for result format.
        target_root: Override for the artifact root directory.
    """

    source_path: str
    pipeline_path: str
    delimiter: str = ","
    write_intermediate: bool | None = None
    output_format: str | None = None
    target_root: str | None = None


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a completed import run.

    Attributes:
        result_dir: Directory holding the final dataset.
        row_count: Rows in the final dataset.
        column_names: Final column layout.
        steps_executed: Step names in execution order.
    """

    result_dir: str
    row_count: int
    column_names: tuple[str, ...]
    steps_executed: tuple[str, ...]


@dataclass(frozen=True)
class ArtifactManifest:
    """Metadata written next to every persisted snapshot.

    Attributes:
        label: Step or snapshot label.
        counter: Snapshot counter, ``None`` for the final result.
        created_at: UTC creation timestamp.
        row_count: Number of rows written.
        columns: Column names written.
        diagnostics: Step-provided diagnostic values.
    """

    label: str
    counter: int | None
    created_at: datetime
    row_count: int
    columns: tuple[str, ...]
    diagnostics: Mapping[str, object] = field(default_factory=dict)


def _arrow_type_name(arrow_type: pa.DataType) -> str:
    if pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
        return STRING_VARIABLE_TYPE
    return str(arrow_type)
