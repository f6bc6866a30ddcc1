"""Typed pipeline definition parsing.

This module loads and validates YAML files that declare the ordered step
list, run defaults, and initially configured variables of an import.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.config import parse_output_format
from core.constants import STRING_VARIABLE_TYPE
from core.errors import WidenConfigError, WidenRunSpecError
from core.run_spec_fields import optional_bool
from core.types import VariableConfig


@dataclass(frozen=True)
class RunSpecDefaults:
    """Run defaults declared by a pipeline definition."""

    target_root: str | None = None
    write_intermediate: bool = False
    output_format: str | None = None


@dataclass(frozen=True)
class RunSpecStep:
    """One step entry from a pipeline definition."""

    step: str
    args: Mapping[str, object]


@dataclass(frozen=True)
class RunSpec:
    """Validated pipeline definition root object.

    Attributes:
        version: Definition format version.
        base_dir: Directory of the definition file for relative paths.
        defaults: Run defaults.
        variables: Initially configured variables.
        steps: Steps in execution order.
    """

    version: int
    base_dir: Path
    defaults: RunSpecDefaults
    variables: tuple[VariableConfig, ...]
    steps: tuple[RunSpecStep, ...]


def load_run_spec(spec_path: str) -> RunSpec:
    """Load and validate a YAML pipeline definition from disk.

    Args:
        spec_path: File path to the YAML definition.

    Returns:
        Fully validated definition.

    Raises:
        WidenRunSpecError: If file is invalid or schema checks fail.
    """
    spec_file = Path(spec_path).expanduser().resolve()
    payload = _load_yaml_payload(spec_file)
    root_mapping = _expect_mapping(payload, "pipeline root")
    _validate_keys(root_mapping, {"version", "defaults", "variables", "steps"}, "pipeline root")
    return RunSpec(
        version=_parse_version(root_mapping),
        base_dir=spec_file.parent,
        defaults=_parse_defaults(root_mapping),
        variables=_parse_variables(root_mapping),
        steps=_parse_steps(root_mapping),
    )


def _load_yaml_payload(spec_file: Path) -> object:
    if not spec_file.exists():
        raise WidenRunSpecError(
            f"Pipeline file does not exist at {spec_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(spec_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise WidenRunSpecError(
            f"Failed to read pipeline at {spec_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise WidenRunSpecError(
            f"Failed to parse YAML pipeline at {spec_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise WidenRunSpecError(f"Pipeline at {spec_file} is empty. Define 'version' and 'steps'.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value)
    raise WidenRunSpecError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise WidenRunSpecError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise WidenRunSpecError("Pipeline field 'version' must be an integer. Set version: 1.")
    if raw_version != 1:
        raise WidenRunSpecError(f"Unsupported pipeline version {raw_version}. Use version: 1.")
    return raw_version


def _parse_defaults(root_mapping: Mapping[str, object]) -> RunSpecDefaults:
    raw_defaults = root_mapping.get("defaults")
    if raw_defaults is None:
        return RunSpecDefaults()
    defaults_mapping = _expect_mapping(raw_defaults, "pipeline defaults")
    _validate_keys(
        defaults_mapping,
        {"target_root", "write_intermediate", "output_format"},
        "pipeline defaults",
    )
    write_intermediate = optional_bool(defaults_mapping, "write_intermediate", False)
    output_format = _optional_string(defaults_mapping, "output_format")
    if output_format is not None:
        try:
            output_format = parse_output_format(output_format)
        except WidenConfigError as error:
            raise WidenRunSpecError(str(error)) from error
    return RunSpecDefaults(
        target_root=_optional_string(defaults_mapping, "target_root"),
        write_intermediate=write_intermediate,
        output_format=output_format,
    )


def _parse_variables(root_mapping: Mapping[str, object]) -> tuple[VariableConfig, ...]:
    raw_variables = root_mapping.get("variables")
    if raw_variables is None:
        return ()
    variables: list[VariableConfig] = []
    seen_names: set[str] = set()
    for index, raw_variable in enumerate(_expect_sequence(raw_variables, "pipeline variables")):
        context = f"pipeline variable #{index + 1}"
        variable_mapping = _expect_mapping(raw_variable, context)
        _validate_keys(variable_mapping, {"name", "type", "use"}, context)
        name = _optional_string(variable_mapping, "name")
        if name is None:
            raise WidenRunSpecError(f"Invalid {context}: field 'name' is required.")
        if name in seen_names:
            raise WidenRunSpecError(f"Invalid {context}: variable '{name}' is declared twice.")
        seen_names.add(name)
        use_variable = variable_mapping.get("use", True)
        if not isinstance(use_variable, bool):
            raise WidenRunSpecError(f"Invalid {context}: field 'use' must be true/false.")
        variables.append(
            VariableConfig(
                name=name,
                variable_type=_optional_string(variable_mapping, "type") or STRING_VARIABLE_TYPE,
                use_variable=use_variable,
            )
        )
    return tuple(variables)


def _parse_steps(root_mapping: Mapping[str, object]) -> tuple[RunSpecStep, ...]:
    raw_steps = root_mapping.get("steps")
    if raw_steps is None:
        raise WidenRunSpecError(
            "Pipeline missing required field 'steps'. Add a non-empty list of steps."
        )
    step_rows = _expect_sequence(raw_steps, "pipeline steps")
    if len(step_rows) == 0:
        raise WidenRunSpecError("Pipeline field 'steps' must include at least one step.")
    return tuple(_parse_step(step_value, index) for index, step_value in enumerate(step_rows))


def _parse_step(step_value: object, step_index: int) -> RunSpecStep:
    context = f"pipeline step #{step_index + 1}"
    step_mapping = _expect_mapping(step_value, context)
    _validate_keys(step_mapping, {"step", "args"}, context)
    raw_step = step_mapping.get("step")
    if not isinstance(raw_step, str) or not raw_step.strip():
        raise WidenRunSpecError(f"Invalid {context}: field 'step' must be a string.")
    raw_args = step_mapping.get("args")
    args = {} if raw_args is None else dict(_expect_mapping(raw_args, f"{context} args"))
    return RunSpecStep(step=raw_step.strip(), args=args)


def _optional_string(mapping: Mapping[str, object], field_name: str) -> str | None:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return None
    if isinstance(raw_value, str):
        normalized_value = raw_value.strip()
        return normalized_value if normalized_value else None
    raise WidenRunSpecError(f"Pipeline field '{field_name}' must be a string when provided.")


def _validate_keys(mapping: Mapping[str, object], allowed_keys: set[str], context: str) -> None:
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise WidenRunSpecError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}."
        )
