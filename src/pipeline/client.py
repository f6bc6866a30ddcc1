"""Python SDK client for import runs.

The client carries one runtime configuration and is shared by the CLI and
library callers so both resolve settings the same way.
"""

from __future__ import annotations

from core.config import WidenConfig
from core.types import ImportOptions, ImportResult
from pipeline.application import run_import
from pipeline.step_catalog import StepDescription, describe_steps


class WidenClient:
    """Primary SDK entry point."""

    def __init__(self, config: WidenConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration; read from the environment when omitted.
        """
        self._config = config or WidenConfig.from_env()

    @property
    def config(self) -> WidenConfig:
        """Runtime configuration used by this client."""
        return self._config

    def run_import(self, options: ImportOptions) -> ImportResult:
        """Import a key/value CSV export into a wide dataset.

        Args:
            options: Import options.

        Returns:
            Result summary.

        Raises:
            WidenError: If the definition, source, steps or writes fail.
        """
        return run_import(options, self._config)

    def steps(self) -> tuple[StepDescription, ...]:
        """List the steps a pipeline definition may reference."""
        return describe_steps()
