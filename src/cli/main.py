"""Widen CLI entry points.
This module exposes the import and step catalog commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from typing import Any, Sequence

from core.constants import DEFAULT_INPUT_DELIMITER, SUPPORTED_OUTPUT_FORMATS
from core.types import ImportOptions
from pipeline.client import WidenClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="widen", description="Reshape key/value variable exports into wide tables"
    )
    parser.add_argument("--target-root", help="Override WIDEN_TARGET_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_run_command(subparsers)
    _add_steps_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Widen CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    client = WidenClient()
    if args.command == "run":
        return _run_import_command(client, args)
    if args.command == "steps":
        return _run_steps_command(client)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_run_command(subparsers: Any) -> None:
    run_parser = subparsers.add_parser("run", help="Import a CSV export through a pipeline")
    run_parser.add_argument("source", help="Key/value CSV export path")
    run_parser.add_argument("--pipeline", required=True, help="Pipeline YAML definition")
    run_parser.add_argument(
        "--delimiter",
        default=DEFAULT_INPUT_DELIMITER,
        help="Input CSV delimiter",
    )
    run_parser.add_argument(
        "--write-intermediate",
        action="store_true",
        default=None,
        help="Persist every step output as a numbered snapshot",
    )
    run_parser.add_argument(
        "--output-format",
        choices=SUPPORTED_OUTPUT_FORMATS,
        help="Result format, overriding the pipeline and environment",
    )


def _add_steps_command(subparsers: Any) -> None:
    subparsers.add_parser("steps", help="List available pipeline steps")


def _run_import_command(client: WidenClient, args: argparse.Namespace) -> int:
    """Handle run command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = ImportOptions(
        source_path=args.source,
        pipeline_path=args.pipeline,
        delimiter=args.delimiter,
        write_intermediate=args.write_intermediate,
        output_format=args.output_format,
        target_root=args.target_root,
    )
    result = client.run_import(options)
    print(result.result_dir)
    return 0


def _run_steps_command(client: WidenClient) -> int:
    for description in client.steps():
        output_level = description.output_level.value if description.output_level else "-"
        print(
            f"{description.name}\t"
            f"{description.input_level.value}\t"
            f"{output_level}\t"
            f"{description.summary}"
        )
    return 0
