"""HTTP client for the read-only pull request API."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import Config
from .errors import FetchError, FormatError, HttpError, NetworkError
from .models import FetchResult
from .transformer import transform_records

logger = logging.getLogger(__name__)


class PullRequestApiClient:
    """Small, typed client for the ``/api/pull_requests`` range query."""

    _PULL_REQUESTS_PATH = "api/pull_requests"

    def __init__(self, config: Config) -> None:
        """Initialize the API client.

        Args:
            config: Validated runtime configuration including base URL and timeout.
        """
        self._config = config
        self._timeout_seconds = config.timeout_seconds
        self._base_url = config.api_url.rstrip("/")

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the base URL."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _format_date(self, value: date) -> str:
        """Format a date as ``YYYY-MM-DD`` for the API's range parameters."""
        return value.isoformat()

    def _get_json_array(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Execute a GET request and return the decoded JSON array body.

        Raises:
            NetworkError: If the request fails at the transport level.
            HttpError: If the API returns a non-2xx status.
            FormatError: If the response is not a JSON array.
        """
        url = self._build_url(path)

        try:
            response = self._session.get(url, params=params, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise NetworkError(f"Pull request API request failed: GET {url}: {exc}") from exc

        status_code = response.status_code
        if not 200 <= status_code < 300:
            raise HttpError(
                status_code,
                f"Pull request API request failed: GET {url} returned {status_code} - {response.text}",
            )

        content_type = response.headers.get("Content-Type", "")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != "application/json" and not media_type.endswith("+json"):
            raise FormatError(
                f"Pull request API returned unexpected content type {content_type!r}: GET {url}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FormatError(f"Pull request API returned invalid JSON: GET {url}") from exc

        if not isinstance(payload, list):
            raise FormatError(f"Pull request API returned unexpected payload shape: GET {url}")

        return payload

    def fetch_pull_requests(
        self,
        start_date: date,
        end_date: date,
        developers: Sequence[str],
    ) -> FetchResult:
        """Fetch pull requests for an inclusive date range and developer filter.

        Request-level failures are returned in ``FetchResult.error`` rather than
        raised. Records failing validation are dropped and reported as warnings.

        Raises:
            ValueError: If ``start_date`` is after ``end_date``.
        """
        if start_date > end_date:
            raise ValueError(
                f"start_date {start_date.isoformat()} is after end_date {end_date.isoformat()}"
            )

        params: Dict[str, Any] = {
            "startdate": self._format_date(start_date),
            "enddate": self._format_date(end_date),
        }
        if developers:
            params["developers"] = list(developers)

        try:
            items = self._get_json_array(self._PULL_REQUESTS_PATH, params=params)
        except FetchError as exc:
            logger.error(
                "Pull request fetch failed",
                extra={
                    "start_date": params["startdate"],
                    "end_date": params["enddate"],
                    "error_type": type(exc).__name__,
                },
            )
            return FetchResult(error=exc)

        pull_requests, warnings = transform_records(items)

        logger.info(
            "Fetched pull requests",
            extra={
                "start_date": params["startdate"],
                "end_date": params["enddate"],
                "developers": len(developers),
                "records_total": len(items),
                "pull_requests": len(pull_requests),
                "dropped": len(warnings),
            },
        )

        return FetchResult(pull_requests=tuple(pull_requests), warnings=tuple(warnings))
