"""Entry point for the sprint PR metrics report."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from .api_client import PullRequestApiClient
from .batch import BatchFetchCoordinator
from .cli import parse_args
from .config import load_config, load_sprints
from .errors import ConfigurationError, DataValidationError
from .metrics import build_chart_series
from .models import BatchStatus
from .stats import generate_pull_request_table, generate_report, generate_stage_summary

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_FETCH = 4


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def orchestrate_report(argv: Optional[Sequence[str]] = None) -> int:
    """Run the full pipeline and print the report.

    Returns:
        Process exit code: ``0`` on success, ``2`` for configuration errors,
        ``4`` when pull requests could not be fetched, ``1`` otherwise.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(
            api_url=args.api_url,
            timeout_seconds=args.timeout,
            sprints_path=args.sprints,
        )
        sprints = load_sprints(config.sprints_path)

        if args.sprint is not None and args.sprint not in {sprint.id for sprint in sprints}:
            raise ConfigurationError(f"Sprint {args.sprint} is not defined in '{config.sprints_path}'.")

        print(f"Fetching pull requests for {len(sprints)} sprint(s) from {config.api_url}...")
        coordinator = BatchFetchCoordinator(PullRequestApiClient(config=config))
        state = coordinator.load(sprints)

        if state.status is BatchStatus.FAILED:
            print(f"ERROR: {state.error}", file=sys.stderr)
            return EXIT_FETCH

        for warning in state.warnings:
            print(f"WARNING: {warning}", file=sys.stderr)

        buckets = state.data
        series = build_chart_series(sprints, buckets)

        print(generate_report(sprints, series))
        print()
        print(generate_stage_summary(buckets))

        if args.sprint is not None:
            sprint = next(item for item in sprints if item.id == args.sprint)
            bucket = next(item for item in buckets if item.sprint_id == args.sprint)
            print()
            print(generate_pull_request_table(sprint, bucket.pull_requests))

        return EXIT_OK
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except DataValidationError as exc:
        logger.error("Computed metric data is inconsistent: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED
    except Exception as exc:
        logger.exception("Unexpected error while generating sprint report")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> None:
    sys.exit(orchestrate_report())


if __name__ == "__main__":
    main()
