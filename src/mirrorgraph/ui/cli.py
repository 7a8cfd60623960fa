# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from mirrorgraph.app import run_command
from mirrorgraph.config import configure_logging
from mirrorgraph.domain.commands import directive_names, parse_directive
from mirrorgraph.domain.pipeline import (
    BuildResult,
    DeleteResult,
    FixtureResult,
    TransitionResult,
)
from mirrorgraph.domain.rows import snapshot_to_row
from mirrorgraph.domain.statements import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from mirrorgraph.domain.model import PermutationEdge
    from mirrorgraph.domain.pipeline import DirectiveResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build and transition a day-by-day identity graph",
    )
    parser.add_argument(
        "directive",
        nargs="?",
        default=None,
        help=(
            f"One of {', '.join(directive_names())}; without one the sample data is "
            "printed and storage is left untouched (env: DIRECTIVE)"
        ),
    )
    parser.add_argument(
        "--start",
        type=str,
        help="ISO-8601 timestamp (UTC) anchoring the sample data (default: 7 days ago)",
    )
    return parser.parse_args(list(argv))


def _json_default(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialise {type(value).__name__}")


def _fixture_document(result: FixtureResult) -> dict[str, Any]:
    return {
        "event_tables": result.event_tables,
        "identity_graphs": {
            str(day): [snapshot_to_row(cluster) for cluster in clusters]
            for day, clusters in result.identity_graphs.items()
        },
    }


def _edge_ids(edges: Sequence[PermutationEdge]) -> list[list[str]]:
    return [list(edge.ids) for edge in edges]


def _report(result: DirectiveResult) -> None:
    if isinstance(result, BuildResult):
        log.info(
            "Build finished: tables=%s, snapshots=%s, current=%s, edges=%s",
            result.loaded_tables,
            [str(day) for day in result.snapshots],
            result.current_day,
            _edge_ids(result.edges),
        )
    elif isinstance(result, TransitionResult):
        log.info(
            "Transition finished: %s -> %s, edges=%s",
            result.previous_day or "unset",
            result.current_day,
            _edge_ids(result.edges),
        )
    elif isinstance(result, DeleteResult):
        log.info("Delete finished: %s", list(result.deleted))
    else:
        print(json.dumps(_fixture_document(result), default=_json_default, indent=2))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        command = parse_directive(parsed_args.directive or os.getenv("DIRECTIVE"))
        start = parse_timestamp(parsed_args.start) if parsed_args.start else None
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        result = run_command(command, start_time=start)
    except Exception:
        log.exception("Fatal error while running %s", type(command).__name__)
        sys.exit(1)

    _report(result)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
