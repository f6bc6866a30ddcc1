"""Artifact manifest persistence helpers.

This module isolates JSON manifest IO for persisted snapshots.
It keeps the dataset writer focused on data files.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Mapping

import pyarrow as pa

from core.constants import MANIFEST_FILE_NAME
from core.errors import WidenStoreError
from core.types import ArtifactManifest


def build_manifest(
    table: pa.Table,
    label: str,
    counter: int | None,
    diagnostics: Mapping[str, object] | None = None,
) -> ArtifactManifest:
    """Describe a table about to be persisted."""
    return ArtifactManifest(
        label=label,
        counter=counter,
        created_at=datetime.now(timezone.utc),
        row_count=table.num_rows,
        columns=tuple(table.column_names),
        diagnostics=dict(diagnostics or {}),
    )


def write_manifest_file(artifact_dir: Path, manifest: ArtifactManifest) -> Path:
    """Write ``manifest.json`` into an artifact directory.

    Raises:
        WidenStoreError: If the file cannot be written.
    """
    manifest_dict = asdict(manifest)
    manifest_dict["created_at"] = manifest.created_at.isoformat()
    manifest_dict["columns"] = list(manifest.columns)
    manifest_path = artifact_dir / MANIFEST_FILE_NAME
    try:
        manifest_path.write_text(
            json.dumps(manifest_dict, indent=2, sort_keys=True, default=str) + "\n",
            encoding="utf-8",
        )
    except OSError as error:
        raise WidenStoreError(
            f"Failed to write manifest at {manifest_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error
    return manifest_path

