"""Unit tests for the pipeline step catalog."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import WidenRunSpecError
from core.run_spec import RunSpecStep, load_run_spec
from core.types import DataLevel
from pipeline.step_catalog import build_step, build_steps, describe_steps
from pipeline.steps import CreateColumnsFromJsonStep, MatchCategoriesStep
from tests.fixture_paths import fixture_path


def test_build_steps_follows_definition_order() -> None:
    """Steps are instantiated in definition order."""
    spec = load_run_spec(str(fixture_path("import/pipeline.yaml")))

    steps = build_steps(spec)

    assert [step.name for step in steps] == [
        "deduplicate_columns",
        "filter_empty_records",
        "variable_types",
        "type_escalation",
        "add_variable_columns",
        "aggregate_to_record",
        "columns_from_json",
        "match_categories",
    ]


def test_build_step_resolves_paths_against_definition_dir() -> None:
    """Relative reference paths resolve next to the definition file."""
    base_dir = fixture_path("import")
    step = build_step(
        RunSpecStep(
            step="match_categories",
            args={"column": "make", "reference_file": "car_brands.csv", "threshold": 0.25},
        ),
        base_dir,
    )

    assert isinstance(step, MatchCategoriesStep)
    assert step.reference_file == base_dir / "car_brands.csv"
    assert step.rules_file is None and step.threshold == 0.25


def test_build_step_keeps_absolute_paths(tmp_path: Path) -> None:
    """Absolute paths are used as given."""
    reference_file = tmp_path / "brands.csv"
    step = build_step(
        RunSpecStep(
            step="match_categories",
            args={"column": "make", "reference_file": str(reference_file)},
        ),
        fixture_path("import"),
    )

    assert step.reference_file == reference_file


def test_build_step_reads_flatten_types() -> None:
    """List arguments are passed to the step."""
    step = build_step(
        RunSpecStep(step="columns_from_json", args={"flatten_types": ["json"]}),
        Path("."),
    )

    assert isinstance(step, CreateColumnsFromJsonStep) and step.flatten_types == ("json",)


@pytest.mark.parametrize(
    ("step_name", "args"),
    [
        ("explode_everything", {}),
        ("deduplicate_columns", {"unexpected": True}),
        ("match_categories", {"column": "make"}),
        ("match_categories", {"column": "make", "reference_file": "a", "threshold": 2}),
        ("match_categories", {"column": "make", "reference_file": "a", "threshold": "high"}),
        ("columns_from_json", {"flatten_types": "json"}),
    ],
)
def test_build_step_rejects_invalid_definitions(step_name: str, args: dict) -> None:
    """Unknown steps and bad arguments raise run-spec errors."""
    with pytest.raises(WidenRunSpecError):
        build_step(RunSpecStep(step=step_name, args=args), Path("."))


def test_describe_steps_lists_levels() -> None:
    """Every catalog step is described with its levels."""
    descriptions = {description.name: description for description in describe_steps()}

    assert len(descriptions) == 8
    assert descriptions["aggregate_to_record"].output_level is DataLevel.RECORD
    assert descriptions["match_categories"].input_level is DataLevel.ANY
    assert descriptions["columns_from_json"].summary
