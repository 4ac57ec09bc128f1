"""edgetrain CLI entry points.
This module exposes dataset preparation and model artifact commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
from typing import Any, Sequence

from core.config import EdgeTrainConfig
from core.constants import SUPPORTED_DECODE_POLICIES
from graph.graph_file import load_graph_spec
from graph.graph_spec import GraphSpec
from graph.reference_topology import build_reference_graph_spec
from ingest.dispatch import QueueDispatcher
from ingest.preparation_state import PreparationStatus
from sdk.training_session import TrainingSession
from serve.artifact_serializer import render_graph_spec_payload

DEFAULT_PROGRESS_INTERVAL = 1000


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="edgetrain", description="On-device training preparation CLI"
    )
    parser.add_argument(
        "--artifact-dir", help="Override EDGETRAIN_ARTIFACT_DIR for this command"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_prepare_dataset_command(subparsers)
    _add_build_model_command(subparsers)
    _add_compile_model_command(subparsers)
    _add_describe_model_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the edgetrain CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _build_config(args.artifact_dir)
    if args.command == "prepare-dataset":
        return _run_prepare_dataset_command(config, args)
    if args.command == "build-model":
        return _run_build_model_command(config, args)
    if args.command == "compile-model":
        return _run_compile_model_command(config, args)
    if args.command == "describe-model":
        return _run_describe_model_command(args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(artifact_dir: str | None) -> EdgeTrainConfig:
    """Build runtime config with optional artifact-dir override."""
    config = EdgeTrainConfig.from_env()
    if artifact_dir:
        config = replace(config, artifact_dir=Path(artifact_dir).expanduser().resolve())
    return config


def _run_prepare_dataset_command(config: EdgeTrainConfig, args: argparse.Namespace) -> int:
    """Handle prepare-dataset command.

    Status updates are queued by the worker and printed from this thread.

    Args:
        config: Runtime config.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.decode_policy:
        config = replace(config, decode_policy=args.decode_policy)
    interval = max(1, args.progress_interval)
    dispatcher = QueueDispatcher()
    session = TrainingSession(config=config, dispatcher=dispatcher)

    def _print_status(status: PreparationStatus) -> None:
        if status.is_ready or status.count % interval == 0:
            print(status.description)

    session.state.subscribe(_print_status)
    collection = session.prepare_dataset(args.source, skip_header=args.skip_header)
    print(f"examples={len(collection)} skipped={collection.skipped_count}")
    return 0


def _run_build_model_command(config: EdgeTrainConfig, args: argparse.Namespace) -> int:
    """Handle build-model command."""
    session = TrainingSession(config=config)
    artifact_path = session.prepare_model(
        spec=_resolve_graph_spec(args.graph_file),
        destination=args.output,
    )
    print(artifact_path)
    return 0


def _run_compile_model_command(config: EdgeTrainConfig, args: argparse.Namespace) -> int:
    """Handle compile-model command."""
    session = TrainingSession(config=config)
    compiled_model = session.compile_model(args.model or config.default_model_path)
    print(f"compiled_path={compiled_model.compiled_path}")
    return 0


def _run_describe_model_command(args: argparse.Namespace) -> int:
    """Handle describe-model command."""
    payload = render_graph_spec_payload(_resolve_graph_spec(args.graph_file))
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def _resolve_graph_spec(graph_file: str | None) -> GraphSpec:
    if graph_file:
        return load_graph_spec(graph_file)
    return build_reference_graph_spec()


def _add_prepare_dataset_command(subparsers: Any) -> None:
    """Register prepare-dataset subcommand."""
    parser = subparsers.add_parser(
        "prepare-dataset", help="Decode an MNIST CSV source into training examples"
    )
    parser.add_argument("source", help="Local CSV file or s3://bucket/key")
    parser.add_argument(
        "--skip-header", action="store_true", help="Drop the first non-blank line"
    )
    parser.add_argument(
        "--decode-policy",
        choices=SUPPORTED_DECODE_POLICIES,
        help="Override EDGETRAIN_DECODE_POLICY for malformed records",
    )
    parser.add_argument(
        "--progress-interval",
        type=int,
        default=DEFAULT_PROGRESS_INTERVAL,
        help="Print progress every N examples",
    )


def _add_build_model_command(subparsers: Any) -> None:
    """Register build-model subcommand."""
    parser = subparsers.add_parser("build-model", help="Write the model artifact")
    parser.add_argument("--graph-file", help="YAML graph file; reference MNIST graph if omitted")
    parser.add_argument("--output", help="Artifact path; artifact dir default if omitted")


def _add_compile_model_command(subparsers: Any) -> None:
    """Register compile-model subcommand."""
    parser = subparsers.add_parser("compile-model", help="Compile a model artifact")
    parser.add_argument("--model", help="Artifact path; artifact dir default if omitted")


def _add_describe_model_command(subparsers: Any) -> None:
    """Register describe-model subcommand."""
    parser = subparsers.add_parser("describe-model", help="Print the graph as JSON")
    parser.add_argument("--graph-file", help="YAML graph file; reference MNIST graph if omitted")
