"""Intermediate snapshot and result persistence.

Intermediate snapshots land in ``intermediate/<NN>_<label>/`` and the final
dataset in ``result/``. Parquet is always written for the result; the CSV
format adds a single pipe-delimited ``result.csv`` export.
"""

from __future__ import annotations

from pathlib import Path
import shutil
from typing import Mapping

import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.csv as pa_csv
import pyarrow.parquet as pq

from core.config import WidenConfig
from core.constants import (
    CSV_DIR_NAME,
    CSV_PART_FILE_NAME,
    INTERMEDIATE_DIR_NAME,
    OUTPUT_FORMAT_CSV,
    PARQUET_DIR_NAME,
    PARQUET_PART_FILE_NAME,
    RESULT_CSV_DELIMITER,
    RESULT_CSV_FILE_NAME,
    RESULT_DIR_NAME,
    RESULT_TIMESTAMP_FORMAT,
    SAVE_MODE_ERROR,
    SNAPSHOT_COUNTER_WIDTH,
)
from core.errors import WidenStoreError
from core.logging_config import get_logger
from store.artifact_manifest import build_manifest, write_manifest_file

_LOGGER = get_logger(__name__)


def intermediate_dir_name(counter: int, label: str) -> str:
    """Return ``<NN>_<label>`` for a snapshot counter and label."""
    return f"{counter:0{SNAPSHOT_COUNTER_WIDTH}d}_{label}"


class DatasetWriter:
    """Filesystem writer for pipeline snapshots and results."""

    def __init__(self, target_root: Path, output_format: str, save_mode: str) -> None:
        self._target_root = target_root
        self._output_format = output_format
        self._save_mode = save_mode

    @classmethod
    def from_config(cls, config: WidenConfig) -> "DatasetWriter":
        """Build a writer from runtime configuration."""
        return cls(config.target_root, config.output_format, config.save_mode)

    @property
    def target_root(self) -> Path:
        """Root directory of all artifacts."""
        return self._target_root

    def write_intermediate(
        self,
        table: pa.Table,
        counter: int,
        label: str,
        diagnostics: Mapping[str, object] | None = None,
    ) -> Path:
        """Persist one numbered intermediate snapshot.

        Args:
            table: Snapshot data.
            counter: Snapshot counter assigned by the runner.
            label: Step or snapshot label.
            diagnostics: Optional values recorded in the manifest.

        Returns:
            Snapshot directory.

        Raises:
            WidenStoreError: If the snapshot cannot be written.
        """
        artifact_dir = (
            self._target_root / INTERMEDIATE_DIR_NAME / intermediate_dir_name(counter, label)
        )
        self._prepare_dir(artifact_dir)
        if self._output_format == OUTPUT_FORMAT_CSV:
            _write_csv(table, artifact_dir / CSV_PART_FILE_NAME)
        else:
            _write_parquet(table, artifact_dir / PARQUET_PART_FILE_NAME)
        write_manifest_file(artifact_dir, build_manifest(table, label, counter, diagnostics))
        _LOGGER.info(
            "intermediate_written",
            path=str(artifact_dir),
            counter=counter,
            label=label,
            row_count=table.num_rows,
        )
        return artifact_dir

    def write_result(self, table: pa.Table) -> Path:
        """Persist the final dataset under ``result/``.

        Raises:
            WidenStoreError: If the result cannot be written.
        """
        result_dir = self._target_root / RESULT_DIR_NAME
        self._prepare_dir(result_dir)
        (result_dir / PARQUET_DIR_NAME).mkdir()
        _write_parquet(table, result_dir / PARQUET_DIR_NAME / PARQUET_PART_FILE_NAME)
        if self._output_format == OUTPUT_FORMAT_CSV:
            (result_dir / CSV_DIR_NAME).mkdir()
            _write_csv(table, result_dir / CSV_DIR_NAME / RESULT_CSV_FILE_NAME)
        write_manifest_file(result_dir, build_manifest(table, RESULT_DIR_NAME, None))
        _LOGGER.info(
            "result_written",
            path=str(result_dir),
            output_format=self._output_format,
            row_count=table.num_rows,
            column_count=table.num_columns,
        )
        return result_dir

    def _prepare_dir(self, artifact_dir: Path) -> None:
        if artifact_dir.exists():
            if self._save_mode == SAVE_MODE_ERROR:
                raise WidenStoreError(
                    f"Artifact directory {artifact_dir} already exists. "
                    "Remove it or set WIDEN_SAVE_MODE=overwrite."
                )
            shutil.rmtree(artifact_dir)
        try:
            artifact_dir.mkdir(parents=True)
        except OSError as error:
            raise WidenStoreError(
                f"Failed to create artifact directory {artifact_dir}: {error}."
            ) from error


def _write_parquet(table: pa.Table, path: Path) -> None:
    try:
        pq.write_table(table, path)
    except (OSError, pa.ArrowException) as error:
        raise WidenStoreError(
            f"Failed to write parquet data at {path}: {error}. "
            "Check write permissions and available disk space."
        ) from error


def _write_csv(table: pa.Table, path: Path) -> None:
    try:
        pa_csv.write_csv(
            _format_timestamps(table),
            path,
            write_options=pa_csv.WriteOptions(
                include_header=True,
                delimiter=RESULT_CSV_DELIMITER,
            ),
        )
    except (OSError, pa.ArrowException) as error:
        raise WidenStoreError(
            f"Failed to write CSV data at {path}: {error}. "
            "Check write permissions and available disk space."
        ) from error


def _format_timestamps(table: pa.Table) -> pa.Table:
    """Render timestamp columns as ISO-like text; other columns pass through."""
    for column_index, column_field in enumerate(table.schema):
        if pa.types.is_timestamp(column_field.type):
            formatted = pc.strftime(table.column(column_index), format=RESULT_TIMESTAMP_FORMAT)
            table = table.set_column(
                column_index, pa.field(column_field.name, pa.string()), formatted
            )
    return table
