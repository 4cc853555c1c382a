"""Batched pull request retrieval for a list of sprints.

Instead of issuing one range query per sprint, the coordinator queries the
union of all sprint windows and members once and splits the result back into
per-sprint buckets by merge date.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from .models import (
    BatchState,
    BatchStatus,
    FetchResult,
    PullRequest,
    Sprint,
    SprintPullRequests,
)

logger = logging.getLogger(__name__)

EPIC_BRANCH_PREFIX = "epic/"

StateListener = Callable[[BatchState], None]


class PullRequestFetcher(Protocol):
    def fetch_pull_requests(
        self,
        start_date: date,
        end_date: date,
        developers: Sequence[str],
    ) -> FetchResult:
        ...


def union_range(sprints: Sequence[Sprint]) -> Tuple[date, date]:
    """Return the smallest inclusive date range covering every sprint window.

    Raises:
        ValueError: If ``sprints`` is empty.
    """
    if not sprints:
        raise ValueError("Cannot compute a date range for an empty sprint list.")

    start = min(sprint.start_date for sprint in sprints)
    end = max(sprint.end_date for sprint in sprints)
    return start, end


def union_members(sprints: Iterable[Sprint]) -> List[str]:
    """Return distinct member names across sprints in first-seen order."""
    names: List[str] = []
    seen = set()
    for sprint in sprints:
        for member in sprint.members:
            if member.name not in seen:
                seen.add(member.name)
                names.append(member.name)
    return names


def is_epic_branch(pr: PullRequest) -> bool:
    """Return whether the PR comes from an aggregate ``epic/`` branch."""
    return pr.branch_name.startswith(EPIC_BRANCH_PREFIX)


def partition_by_sprint(
    sprints: Sequence[Sprint],
    pull_requests: Iterable[PullRequest],
) -> List[SprintPullRequests]:
    """Split pull requests into per-sprint buckets by merge date.

    Epic branches and unmerged pull requests are excluded. One bucket is
    returned per input sprint, in input order, possibly empty.
    """
    candidates: List[Tuple[datetime, PullRequest]] = []
    for pr in pull_requests:
        merged = pr.merged
        if merged is None or is_epic_branch(pr):
            continue
        candidates.append((merged, pr))

    buckets: List[SprintPullRequests] = []
    for sprint in sprints:
        members = tuple(pr for merged, pr in candidates if sprint.contains(merged))
        buckets.append(SprintPullRequests(sprint_id=sprint.id, pull_requests=members))

    return buckets


class BatchFetchCoordinator:
    """Loads and buckets pull requests for a sprint list with a single fetch.

    The coordinator owns an immutable ``BatchState`` snapshot that moves through
    ``IDLE -> LOADING -> READY | FAILED``. Loads are memoized on the sprint list
    content, so repeating a load with an equal list neither refetches nor retries
    a failure. Every load is tagged with a generation number and a result that
    arrives after a newer load has started is discarded.
    """

    def __init__(self, fetcher: PullRequestFetcher) -> None:
        self._fetcher = fetcher
        self._state = BatchState()
        self._key: Optional[Tuple[Sprint, ...]] = None
        self._generation = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked with every new state snapshot."""
        self._listeners.append(listener)

    def _set_state(self, state: BatchState) -> None:
        self._state = state
        for listener in self._listeners:
            listener(state)

    def load(self, sprints: Sequence[Sprint]) -> BatchState:
        """Load bucketed pull requests for ``sprints``.

        Returns:
            The coordinator state after the load. When the load was superseded
            by a newer one, the newer state is returned.
        """
        key = tuple(sprints)
        if key == self._key and self._state.status is not BatchStatus.IDLE:
            logger.debug("Sprint list unchanged; reusing batch state", extra={"sprints": len(key)})
            return self._state

        self._key = key
        self._generation += 1
        generation = self._generation

        if not key:
            self._set_state(BatchState(status=BatchStatus.READY))
            return self._state

        self._set_state(BatchState(status=BatchStatus.LOADING))
        result_state = self._fetch_and_partition(key)

        if generation != self._generation:
            logger.info(
                "Discarding superseded batch result",
                extra={"generation": generation, "current_generation": self._generation},
            )
            return self._state

        self._set_state(result_state)
        return self._state

    def _fetch_and_partition(self, sprints: Tuple[Sprint, ...]) -> BatchState:
        start, end = union_range(sprints)
        developers = union_members(sprints)

        logger.info(
            "Fetching pull requests for sprint batch",
            extra={
                "sprints": len(sprints),
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "developers": len(developers),
            },
        )

        try:
            result = self._fetcher.fetch_pull_requests(start, end, developers)
        except Exception as exc:
            logger.exception("Unexpected error while fetching sprint batch")
            return BatchState(
                status=BatchStatus.FAILED,
                error=str(exc) or "Failed to fetch pull requests",
            )

        if not result.ok:
            return BatchState(
                status=BatchStatus.FAILED,
                error=str(result.error) or "Failed to fetch pull requests",
                warnings=result.warnings,
            )

        buckets = partition_by_sprint(sprints, result.pull_requests)
        logger.info(
            "Partitioned sprint batch",
            extra={
                "pull_requests": len(result.pull_requests),
                "bucketed": sum(len(bucket.pull_requests) for bucket in buckets),
                "warnings": len(result.warnings),
            },
        )
        return BatchState(
            status=BatchStatus.READY,
            buckets=tuple(buckets),
            warnings=result.warnings,
        )
