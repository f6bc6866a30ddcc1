"""Public SDK surface for Widen.

This module provides a stable import path for library users.
It re-exports the client, run options, and the building blocks of custom pipelines.
"""

from __future__ import annotations

from core.config import WidenConfig
from core.partition_executor import PartitionExecutor
from core.type_registry import RegistrySnapshot, TypeRegistry
from core.types import DataLevel, ImportOptions, ImportResult, Variable, VariableConfig
from pipeline.application import run_import
from pipeline.client import WidenClient
from pipeline.runner import PipelineRunner, PipelineRunResult
from pipeline.step import PipelineStep, StepContext
from store.dataset_writer import DatasetWriter
from transforms.json_columns import expand_json_columns

__all__ = [
    "DataLevel",
    "DatasetWriter",
    "ImportOptions",
    "ImportResult",
    "PartitionExecutor",
    "PipelineRunResult",
    "PipelineRunner",
    "PipelineStep",
    "RegistrySnapshot",
    "StepContext",
    "TypeRegistry",
    "Variable",
    "VariableConfig",
    "WidenClient",
    "WidenConfig",
    "expand_json_columns",
    "run_import",
]
