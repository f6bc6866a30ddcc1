"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src and repository root to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    for import_path in (project_root / "src", project_root):
        if str(import_path) not in sys.path:
            sys.path.insert(0, str(import_path))


@pytest.fixture
def widen_config(tmp_path: Path):
    """Config writing under a temporary root with small parallel partitions."""
    from core.config import WidenConfig

    return WidenConfig(
        target_root=tmp_path / "target",
        output_format="parquet",
        save_mode="overwrite",
        workers=2,
        partition_rows=2,
        strict_consistency=False,
    )


@pytest.fixture
def executor(widen_config):
    """Partition executor splitting tables into two-row partitions."""
    from core.partition_executor import PartitionExecutor

    return PartitionExecutor.from_config(widen_config)
