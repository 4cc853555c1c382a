"""Statistics and formatting helpers for sprint metric reporting.

This module provides utilities for:
- Computing linear-interpolation percentiles from pre-sorted samples.
- Aggregating stage-duration summary statistics (P50, P75, P90, count).
- Formatting second-based durations as ``HH:MM:SS``.
- Rendering the per-sprint metrics table, the stage summary and the
  per-sprint pull request listing as plain text.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence, cast

from .metrics import stage_durations
from .models import Metrics, PullRequest, Sprint, SprintPullRequests


def calculate_percentile(sorted_values: List[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks.

    Args:
        sorted_values: Sorted numeric samples.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        Percentile value as ``float`` or ``None`` when input is empty.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def compute_statistics(samples: Sequence[Optional[float]]) -> Dict[str, Optional[float]]:
    """Compute P50, P75, P90, and sample count for duration samples.

    ``None``, ``NaN`` and negative values are ignored.

    Returns:
        Dictionary with keys ``p50``, ``p75``, ``p90``, and ``count``.
        Percentiles are ``None`` when no valid samples exist.
    """
    clean_samples = sorted(
        sample
        for sample in samples
        if sample is not None and not math.isnan(sample) and sample >= 0
    )

    return {
        "p50": calculate_percentile(clean_samples, 50),
        "p75": calculate_percentile(clean_samples, 75),
        "p90": calculate_percentile(clean_samples, 90),
        "count": cast(Optional[float], len(clean_samples)),
    }


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``HH:MM:SS``.

    Returns ``"n/a"`` when ``seconds`` is ``None``. Negative durations, which
    only occur with out-of-order timestamps, keep a leading ``-``.
    """
    if seconds is None:
        return "n/a"

    total_seconds = int(round(seconds))
    sign = "-" if total_seconds < 0 else ""
    total_seconds = abs(total_seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    remaining_seconds = total_seconds % 60
    return f"{sign}{hours:02d}:{minutes:02d}:{remaining_seconds:02d}"


def _scores_by_sprint(points: Sequence[Metrics]) -> Dict[int, float]:
    return {point.sprint_id: point.score for point in points}


def generate_report(sprints: Sequence[Sprint], series: Mapping[str, Sequence[Metrics]]) -> str:
    """Generate the per-sprint metrics table.

    Args:
        sprints: Sprints to list, rendered in ascending id order.
        series: Chart series as returned by ``build_chart_series``.

    Returns:
        Formatted multi-line text report.
    """
    pr_counts = _scores_by_sprint(series.get("pr_count", ()))
    throughput = _scores_by_sprint(series.get("dev_day_developer", ()))
    first_review = _scores_by_sprint(series.get("until_first_reviewed", ()))
    last_approval = _scores_by_sprint(series.get("until_last_approved", ()))
    merge = _scores_by_sprint(series.get("until_merged", ()))

    header = (
        f"{'Sprint':>6}  {'Window':<23}  {'PRs':>4}  {'Dev/Day/Dev':>11}  "
        f"{'1st review':>10}  {'Last aprv':>10}  {'Merge':>10}  Members"
    )
    lines = ["Sprint PR Metrics Report", "", header, "-" * len(header)]

    for sprint in sorted(sprints, key=lambda item: item.id):
        window = f"{sprint.start_date.isoformat()}..{sprint.end_date.isoformat()}"
        members = ", ".join(member.name for member in sprint.members) or "-"
        lines.append(
            f"{sprint.id:>6}  {window:<23}  {int(pr_counts.get(sprint.id, 0)):>4}  "
            f"{throughput.get(sprint.id, 0.0):>11.2f}  "
            f"{format_duration(first_review.get(sprint.id)):>10}  "
            f"{format_duration(last_approval.get(sprint.id)):>10}  "
            f"{format_duration(merge.get(sprint.id)):>10}  "
            f"{members}"
        )

    return "\n".join(lines)


def generate_stage_summary(buckets: Sequence[SprintPullRequests]) -> str:
    """Summarize stage-duration percentiles across all bucketed pull requests."""
    durations = [stage_durations(pr) for bucket in buckets for pr in bucket.pull_requests]

    sections = (
        ("Until first review", [item.until_first_reviewed for item in durations]),
        ("First review to last approval", [item.until_last_approved for item in durations]),
        ("Last approval to merge", [item.until_merged for item in durations]),
    )

    lines = ["Stage Duration Summary"]
    for index, (title, samples) in enumerate(sections, start=1):
        stats = compute_statistics(samples)
        lines.extend(
            [
                "",
                f"{index}) {title}",
                f"   Samples: {int(cast(float, stats['count']))}",
                f"   P50: {format_duration(stats['p50'])}",
                f"   P75: {format_duration(stats['p75'])}",
                f"   P90: {format_duration(stats['p90'])}",
            ]
        )

    return "\n".join(lines)


def generate_pull_request_table(sprint: Sprint, pull_requests: Sequence[PullRequest]) -> str:
    """Render the merged pull requests of one sprint with their stage durations."""
    lines = [
        f"Sprint {sprint.id} ({sprint.start_date.isoformat()}..{sprint.end_date.isoformat()})",
        "",
    ]

    if not pull_requests:
        lines.append("No merged pull requests.")
        return "\n".join(lines)

    header = f"{'ID':>6}  {'Author':<20}  {'1st review':>10}  {'Last aprv':>10}  {'Merge':>10}  Title"
    lines.extend([header, "-" * len(header)])

    for pr in sorted(pull_requests, key=lambda item: (item.merged is None, item.merged, item.id)):
        durations = stage_durations(pr)
        lines.append(
            f"{pr.id:>6}  {pr.username:<20}  "
            f"{format_duration(durations.until_first_reviewed):>10}  "
            f"{format_duration(durations.until_last_approved):>10}  "
            f"{format_duration(durations.until_merged):>10}  {pr.title}"
        )

    return "\n".join(lines)
