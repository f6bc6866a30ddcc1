"""Shared fixture path helpers for tests."""

from __future__ import annotations

import shutil
from pathlib import Path


def fixture_path(relative_path: str) -> Path:
    """Resolve a fixture path relative to tests/fixtures.

    Args:
        relative_path: Path under fixtures root.

    Returns:
        Absolute fixture path.
    """
    tests_root = Path(__file__).resolve().parent
    return tests_root / "fixtures" / relative_path


def copy_fixture_dir(relative_path: str, destination: Path) -> Path:
    """Copy a fixture directory so tests can write next to its files."""
    target = destination / Path(relative_path).name
    shutil.copytree(fixture_path(relative_path), target)
    return target
