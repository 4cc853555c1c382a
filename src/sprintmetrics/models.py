"""Domain models for sprint-level pull request metrics.

These dataclasses model the subset of API payload fields required for metric
computation, the sprint configuration, and the snapshots produced while a
batch of sprints is being loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from .errors import BatchNotReadyError, ConfigurationError, FetchError


@dataclass(frozen=True, slots=True)
class Member:
    """Represents a developer taking part in a sprint."""

    name: str
    icon_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Sprint:
    """Represents a fixed, inclusive calendar window and its developers."""

    id: int
    start_date: date
    end_date: date
    members: Tuple[Member, ...] = ()

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ConfigurationError(
                f"Sprint {self.id} starts after it ends: "
                f"{self.start_date.isoformat()} > {self.end_date.isoformat()}"
            )

    def contains(self, moment: datetime) -> bool:
        """Return whether ``moment`` falls on a UTC day inside the sprint window."""
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return self.start_date <= moment.date() <= self.end_date


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Represents one pull request with its lifecycle timestamps."""

    id: int
    title: str
    branch_name: str
    url: str
    username: str
    icon_url: str
    repository: str
    created: datetime
    first_reviewed: Optional[datetime] = None
    last_approved: Optional[datetime] = None
    merged: Optional[datetime] = None
    base_branch_name: Optional[str] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Metrics:
    """Represents one scalar chart point keyed by sprint."""

    sprint_id: int
    score: float


@dataclass(frozen=True, slots=True)
class SprintMetrics:
    """Represents the five chart metrics computed for one sprint."""

    pr_count: Metrics
    dev_day_developer: Metrics
    until_first_reviewed: Metrics
    until_last_approved: Metrics
    until_merged: Metrics


@dataclass(frozen=True, slots=True)
class StageDurations:
    """Represents per-PR stage durations in seconds."""

    until_first_reviewed: Optional[float]
    until_last_approved: Optional[float]
    until_merged: Optional[float]


@dataclass(frozen=True, slots=True)
class SprintPullRequests:
    """Represents the merged pull requests that belong to one sprint."""

    sprint_id: int
    pull_requests: Tuple[PullRequest, ...] = ()


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Tagged outcome of a pull request range query.

    Exactly one of ``error`` or the data fields is meaningful: when ``error`` is
    set, ``pull_requests`` is empty.
    """

    pull_requests: Tuple[PullRequest, ...] = ()
    warnings: Tuple[str, ...] = ()
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchStatus(Enum):
    """Lifecycle of a batch load."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BatchState:
    """Immutable snapshot of the batch coordinator's state."""

    status: BatchStatus = BatchStatus.IDLE
    buckets: Tuple[SprintPullRequests, ...] = ()
    error: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def data(self) -> List[SprintPullRequests]:
        """Return the bucketed data.

        Raises:
            BatchNotReadyError: If the batch is not in the ``READY`` state.
        """
        if self.status is not BatchStatus.READY:
            raise BatchNotReadyError(
                f"Batch data is not available while {self.status.value}"
                + (f": {self.error}" if self.error else "")
            )
        return list(self.buckets)
