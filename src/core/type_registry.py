"""Driver-owned registry of variable types.

This module keeps named variable->type mappings for one pipeline run.
Workers only ever see immutable snapshots; the driver thread that created
the registry is the single writer and updates it between steps.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from types import MappingProxyType
from typing import Mapping

from core.errors import WidenSchemaError
from core.logging_config import get_logger
from core.types import Variable, VariableProvenance

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of one named mapping at a given version.

    Attributes:
        key: Registry key the snapshot was taken from.
        version: Write counter of the mapping when captured.
        variables: Immutable name->variable mapping.
    """

    key: str
    version: int
    variables: Mapping[str, Variable]

    def names(self) -> frozenset[str]:
        """Return the variable names in this snapshot."""
        return frozenset(self.variables)

    def type_of(self, name: str) -> str | None:
        """Return the type tag for a variable, or None when unknown."""
        variable = self.variables.get(name)
        return variable.variable_type if variable else None

    def type_map(self) -> dict[str, str]:
        """Return a plain name->type copy sorted by name."""
        return {name: self.variables[name].variable_type for name in sorted(self.variables)}


class TypeRegistry:
    """Single-writer, many-reader store of named variable mappings."""

    def __init__(self) -> None:
        self._driver_thread = threading.get_ident()
        self._mappings: dict[str, dict[str, Variable]] = {}
        self._versions: dict[str, int] = {}

    def get(self, key: str) -> RegistrySnapshot:
        """Return an immutable snapshot of one named mapping.

        Args:
            key: Registry key.

        Returns:
            Snapshot; empty at version 0 for unknown keys.
        """
        variables = dict(self._mappings.get(key, {}))
        return RegistrySnapshot(
            key=key,
            version=self._versions.get(key, 0),
            variables=MappingProxyType(variables),
        )

    def broadcast(self, key: str) -> RegistrySnapshot:
        """Capture the snapshot handed to workers for one step."""
        snapshot = self.get(key)
        _LOGGER.info(
            "registry_broadcast",
            key=key,
            version=snapshot.version,
            variable_count=len(snapshot.variables),
        )
        return snapshot

    def put(
        self,
        key: str,
        name: str,
        variable_type: str,
        provenance: VariableProvenance = VariableProvenance.DISCOVERED,
    ) -> None:
        """Add or escalate one variable entry.

        Raises:
            WidenSchemaError: If called off the driver thread.
        """
        self._check_writer(key)
        mapping = self._mappings.setdefault(key, {})
        existing = mapping.get(name)
        if existing is not None and existing.provenance == VariableProvenance.CONFIGURED:
            provenance = VariableProvenance.CONFIGURED
        mapping[name] = Variable(name=name, variable_type=variable_type, provenance=provenance)
        self._versions[key] = self._versions.get(key, 0) + 1

    def set(self, key: str, variables: Mapping[str, Variable]) -> None:
        """Replace a named mapping with a superset of its current names.

        Args:
            key: Registry key.
            variables: New name->variable mapping.

        Raises:
            WidenSchemaError: If called off the driver thread or names would be removed.
        """
        self._check_writer(key)
        removed_names = sorted(set(self._mappings.get(key, {})) - set(variables))
        if removed_names:
            raise WidenSchemaError(
                f"Registry mapping '{key}' is append-only; refusing to remove "
                f"{', '.join(removed_names)}."
            )
        self._mappings[key] = dict(variables)
        self._versions[key] = self._versions.get(key, 0) + 1

    def _check_writer(self, key: str) -> None:
        if threading.get_ident() != self._driver_thread:
            raise WidenSchemaError(
                f"Registry write race on '{key}': writes are only allowed from the driver "
                "thread between steps. Return new variables from workers instead."
            )
