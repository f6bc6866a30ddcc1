"""Widen exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class WidenError(Exception):
    """Base exception for all Widen failures."""


class WidenConfigError(WidenError):
    """Raised for invalid runtime configuration."""


class WidenRunSpecError(WidenError):
    """Raised for invalid or unsupported pipeline definitions."""


class WidenIngestError(WidenError):
    """Raised for source parsing and import failures."""


class WidenTransformError(WidenError):
    """Raised for transform step failures."""


class WidenReferenceDataError(WidenTransformError):
    """Raised when a step cannot read its reference data files."""


class WidenSchemaError(WidenError):
    """Raised when a schema or type registry invariant is breached."""


class WidenStoreError(WidenError):
    """Raised for snapshot and result persistence failures."""


class WidenPipelineError(WidenError):
    """Raised for invalid pipeline composition or runner misuse."""


class WidenStepError(WidenPipelineError):
    """Raised when one pipeline step fails and aborts the run."""

    def __init__(self, step_index: int, step_name: str, message: str) -> None:
        super().__init__(message)
        self.step_index = step_index
        self.step_name = step_name
