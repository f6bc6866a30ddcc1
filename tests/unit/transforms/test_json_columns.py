"""Unit tests for two-pass JSON column discovery and materialization."""

from __future__ import annotations

import pyarrow as pa
import pytest

from core.errors import WidenSchemaError
from core.partition_executor import PartitionExecutor
from transforms.json_columns import (
    discover_json_columns,
    expand_json_columns,
    materialize_json_columns,
    parse_json_object,
)


def _status_table() -> pa.Table:
    return pa.table(
        {
            "id_record_variable": ["7", "8", "9", "10"],
            "name_": ["status", "status", "status", "status"],
            "value": [
                '{"a":"x","b":{"c":1}}',
                '{"a":"y","d":2.50,"e":true,"f":null}',
                "plain text",
                None,
            ],
        }
    )


def test_expand_example_flattens_first_level_scalars(executor: PartitionExecutor) -> None:
    """Object fields become columns; nested objects are dropped."""
    table = pa.table({"id_record_variable": ["7"], "value": ['{"a":"x","b":{"c":1}}']})

    result = expand_json_columns(table, ["value"], executor)

    assert result.discovered_columns == ("value_a",)
    assert result.table.column("value_a").to_pylist() == ["x"]
    assert "value_b" not in result.table.column_names


def test_expand_keeps_scalar_source_text(executor: PartitionExecutor) -> None:
    """Numbers keep source text; booleans and null render as JSON literals."""
    result = expand_json_columns(_status_table(), ["value"], executor)

    assert result.discovered_columns == ("value_a", "value_d", "value_e", "value_f")
    assert result.table.column("value_d").to_pylist() == [None, "2.50", None, None]
    assert result.table.column("value_e").to_pylist() == [None, "true", None, None]
    assert result.table.column("value_f").to_pylist() == [None, "null", None, None]


def test_expand_preserves_original_columns_and_rows(executor: PartitionExecutor) -> None:
    """Original columns are copied unchanged and row count is stable."""
    table = _status_table()

    result = expand_json_columns(table, ["value"], executor)

    assert result.table.column_names[: table.num_columns] == table.column_names
    assert result.table.select(table.column_names).equals(table)
    assert result.input_row_count == result.output_row_count == table.num_rows


def test_expand_is_deterministic(executor: PartitionExecutor) -> None:
    """Two runs over identical input give identical schemas and rows."""
    first = expand_json_columns(_status_table(), ["value"], executor)
    second = expand_json_columns(_status_table(), ["value"], executor)

    assert first.schema == second.schema
    assert first.table.equals(second.table)


def test_expand_matches_across_partition_layouts() -> None:
    """Serial and partitioned runs should agree."""
    serial = expand_json_columns(_status_table(), ["value"], PartitionExecutor(1, 100))
    parallel = expand_json_columns(_status_table(), ["value"], PartitionExecutor(4, 1))

    assert serial.table.equals(parallel.table)


def test_discovered_columns_cover_every_scalar_field(executor: PartitionExecutor) -> None:
    """Every first-level scalar field of any row yields a column."""
    table = pa.table(
        {"payload": ['{"a":1}', '{"b":"2"}', '{"c":[1,2]}', '{"a":3,"z":"last"}']}
    )

    discovered = discover_json_columns(table, ["payload"], executor)

    assert discovered == ("payload_a", "payload_b", "payload_z")


def test_non_variable_columns_are_not_parsed(executor: PartitionExecutor) -> None:
    """Only the requested variable columns are eligible."""
    table = pa.table({"payload": ['{"a":1}'], "other": ['{"b":2}']})

    result = expand_json_columns(table, ["payload", "absent"], executor)

    assert result.discovered_columns == ("payload_a",)


def test_well_formed_input_has_no_inconsistency(executor: PartitionExecutor) -> None:
    """Well-formed input never reaches the inconsistency path."""
    result = expand_json_columns(_status_table(), ["value"], executor, strict=True)

    assert result.inconsistent_columns == ()


def test_expand_rejects_name_collision(executor: PartitionExecutor) -> None:
    """A discovered name equal to an existing column violates the schema."""
    table = pa.table({"value": ['{"a":"x"}'], "value_a": ["existing"]})

    with pytest.raises(WidenSchemaError):
        expand_json_columns(table, ["value"], executor)


def test_expand_rejects_names_shared_by_two_source_columns(executor: PartitionExecutor) -> None:
    """Two columns flattening to one name would overwrite values."""
    table = pa.table({"a": ['{"b_c":"from_a"}'], "a_b": ['{"c":"from_a_b"}']})

    with pytest.raises(WidenSchemaError, match="a_b_c"):
        expand_json_columns(table, ["a", "a_b"], executor)


def test_same_field_across_partitions_is_not_ambiguous(executor: PartitionExecutor) -> None:
    """One source column repeating a field in many partitions is fine."""
    table = pa.table({"a": ['{"b":"1"}', '{"b":"2"}', '{"b":"3"}']})

    assert discover_json_columns(table, ["a"], executor) == ("a_b",)


def test_undiscovered_field_is_dropped_with_warning(executor: PartitionExecutor) -> None:
    """Fields unknown to discovery are reported and not materialized."""
    table = pa.table({"value": ['{"a":"x","late":"y"}']})

    materialized, inconsistent = materialize_json_columns(
        table, ["value"], ("value_a",), executor
    )

    assert inconsistent == ("value_late",)
    assert materialized.column_names == ["value", "value_a"]


def test_undiscovered_field_raises_when_strict(executor: PartitionExecutor) -> None:
    """Strict consistency turns the cross-pass warning into an error."""
    table = pa.table({"value": ['{"a":"x","late":"y"}']})

    with pytest.raises(WidenSchemaError, match="value_late"):
        materialize_json_columns(table, ["value"], ("value_a",), executor, strict=True)


def test_expand_without_json_values_adds_nothing(executor: PartitionExecutor) -> None:
    """Plain scalars are not expandable."""
    table = pa.table({"value": ["12", "true", "[1, 2]", "NaN", ""]})

    result = expand_json_columns(table, ["value"], executor)

    assert result.discovered_columns == () and result.table.equals(table)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ('{"a": 1}', {"a": "1"}),
        ("[1, 2]", None),
        ('"text"', None),
        ('{"a": NaN}', None),
        ("{broken", None),
        (42, None),
    ],
)
def test_parse_json_object(value: object, expected: object) -> None:
    """Only JSON objects are expandable; numbers keep their text."""
    assert parse_json_object(value) == expected
