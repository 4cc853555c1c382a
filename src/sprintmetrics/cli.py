"""Command-line argument parsing for the sprint PR metrics report."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the sprint report.

    Returns:
        Parsed CLI arguments containing the sprint file, API URL, timeout,
        optional sprint id for the detail view and verbosity.
    """
    parser = argparse.ArgumentParser(
        prog="sprint-pr-metrics",
        description=(
            "Report pull request review latency, merge counts and developer "
            "throughput grouped by sprint."
        ),
    )

    parser.add_argument(
        "--sprints",
        required=True,
        help="Path to the JSON file defining sprints and their members.",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help=(
            "Base URL of the pull request API "
            "(default: $SPRINT_METRICS_API_URL or http://localhost:8080)."
        ),
    )
    parser.add_argument(
        "--timeout",
        type=_positive_int,
        default=30,
        help="Per-request timeout in seconds (default: 30).",
    )
    parser.add_argument(
        "--sprint",
        type=int,
        default=None,
        help="Also list the merged pull requests of this sprint id.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)
