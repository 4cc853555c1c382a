"""Sprint metric calculations for merged pull requests.

This module computes the chart metrics for one sprint bucket:
- average time from creation to first review
- average time from first review to last approval
- average time from last approval to merge
- merged PR count
- Dev/Day/Developer throughput (PR count per member per sprint day)

All durations are in seconds. Buckets without qualifying pull requests yield
``0`` rather than ``NaN`` so that empty sprints still render.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .errors import DataValidationError
from .models import Metrics, PullRequest, Sprint, SprintMetrics, SprintPullRequests, StageDurations

logger = logging.getLogger(__name__)

SPRINT_WORKING_DAYS = 5

SERIES_NAMES = (
    "until_first_reviewed",
    "until_last_approved",
    "until_merged",
    "pr_count",
    "dev_day_developer",
)


def _delta_seconds(
    pr: PullRequest,
    start: Optional[datetime],
    end: Optional[datetime],
    stage: str,
) -> Optional[float]:
    if start is None or end is None:
        return None

    duration_seconds = (end - start).total_seconds()
    if duration_seconds < 0:
        logger.debug(
            "Pull request timestamps are out of order",
            extra={"pr_id": pr.id, "stage": stage, "duration_seconds": duration_seconds},
        )
    return duration_seconds


def _mean_stage(
    pull_requests: Iterable[PullRequest],
    stage: str,
    start: Callable[[PullRequest], Optional[datetime]],
    end: Callable[[PullRequest], Optional[datetime]],
) -> float:
    samples = [
        sample
        for sample in (_delta_seconds(pr, start(pr), end(pr), stage) for pr in pull_requests)
        if sample is not None
    ]
    if not samples:
        return 0.0
    return sum(samples) / len(samples)


def until_first_reviewed(pull_requests: Iterable[PullRequest]) -> float:
    """Mean seconds from creation to first review over PRs having both timestamps."""
    return _mean_stage(
        pull_requests,
        "until_first_reviewed",
        lambda pr: pr.created,
        lambda pr: pr.first_reviewed,
    )


def until_last_approved(pull_requests: Iterable[PullRequest]) -> float:
    """Mean seconds from first review to last approval over PRs having both timestamps."""
    return _mean_stage(
        pull_requests,
        "until_last_approved",
        lambda pr: pr.first_reviewed,
        lambda pr: pr.last_approved,
    )


def until_merged(pull_requests: Iterable[PullRequest]) -> float:
    """Mean seconds from last approval to merge over PRs having both timestamps."""
    return _mean_stage(
        pull_requests,
        "until_merged",
        lambda pr: pr.last_approved,
        lambda pr: pr.merged,
    )


def pr_count(pull_requests: Sequence[PullRequest]) -> int:
    return len(pull_requests)


def dev_day_developer(pull_request_count: int, member_count: int) -> float:
    """Compute merged PRs per member per sprint day.

    Returns ``0`` when the sprint has no members.
    """
    if member_count == 0:
        return 0.0
    return pull_request_count / member_count / SPRINT_WORKING_DAYS


def stage_durations(pr: PullRequest) -> StageDurations:
    """Compute the per-PR stage durations shown in the pull request listing."""
    return StageDurations(
        until_first_reviewed=_delta_seconds(pr, pr.created, pr.first_reviewed, "until_first_reviewed"),
        until_last_approved=_delta_seconds(pr, pr.first_reviewed, pr.last_approved, "until_last_approved"),
        until_merged=_delta_seconds(pr, pr.last_approved, pr.merged, "until_merged"),
    )


def calculate_sprint_metrics(sprint: Sprint, pull_requests: Sequence[PullRequest]) -> SprintMetrics:
    """Compute all chart metrics for one sprint bucket."""
    count = pr_count(pull_requests)

    return SprintMetrics(
        pr_count=Metrics(sprint_id=sprint.id, score=count),
        dev_day_developer=Metrics(
            sprint_id=sprint.id,
            score=dev_day_developer(count, len(sprint.members)),
        ),
        until_first_reviewed=Metrics(sprint_id=sprint.id, score=until_first_reviewed(pull_requests)),
        until_last_approved=Metrics(sprint_id=sprint.id, score=until_last_approved(pull_requests)),
        until_merged=Metrics(sprint_id=sprint.id, score=until_merged(pull_requests)),
    )


def build_chart_series(
    sprints: Sequence[Sprint],
    buckets: Sequence[SprintPullRequests],
) -> Dict[str, List[Metrics]]:
    """Assemble one series per metric with one point per sprint.

    Points are ordered by sprint id ascending. Sprints without a bucket are
    treated as having no merged pull requests.

    Raises:
        DataValidationError: If a bucket refers to a sprint that is not in ``sprints``.
    """
    sprints_by_id = {sprint.id: sprint for sprint in sprints}
    bucket_by_id: Dict[int, Sequence[PullRequest]] = {}

    for bucket in buckets:
        if bucket.sprint_id not in sprints_by_id:
            raise DataValidationError(f"Bucket refers to unknown sprint id {bucket.sprint_id}.")
        bucket_by_id[bucket.sprint_id] = bucket.pull_requests

    series: Dict[str, List[Metrics]] = {name: [] for name in SERIES_NAMES}

    for sprint_id in sorted(sprints_by_id):
        sprint_metrics = calculate_sprint_metrics(
            sprints_by_id[sprint_id],
            bucket_by_id.get(sprint_id, ()),
        )
        for name in SERIES_NAMES:
            series[name].append(getattr(sprint_metrics, name))

    logger.info(
        "Built chart series",
        extra={"sprints": len(sprints_by_id), "buckets": len(bucket_by_id)},
    )

    return series
