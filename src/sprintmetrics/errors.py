"""Custom exception types for the sprint PR metrics dashboard."""

from __future__ import annotations

from typing import Optional, Sequence


class SprintMetricsError(Exception):
    """Base exception for all recoverable sprint metrics errors."""


class ConfigurationError(SprintMetricsError):
    """Raised when runtime configuration values or the sprint file are missing or invalid."""


class DataValidationError(SprintMetricsError):
    """Raised when API payloads or computed metric data do not meet expected constraints."""


class InvalidRecord(DataValidationError):
    """Raised when a single pull request record fails schema validation."""

    def __init__(self, problems: Sequence[str], record_id: Optional[object] = None) -> None:
        self.problems = list(problems)
        self.record_id = record_id
        label = f"record {record_id!r}" if record_id is not None else "record"
        super().__init__(f"Invalid pull request {label}: {'; '.join(self.problems)}")


class FetchError(SprintMetricsError):
    """Base class for request-level pull request fetch failures."""


class HttpError(FetchError):
    """Raised when the pull request API answers with a non-success status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        super().__init__(message)


class FormatError(FetchError):
    """Raised when the API response has an unexpected content type or body shape."""


class NetworkError(FetchError):
    """Raised when the API cannot be reached at the transport level."""


class BatchNotReadyError(SprintMetricsError):
    """Raised when batch data is read while loading or after a failure."""
