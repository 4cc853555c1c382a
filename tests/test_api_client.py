"""Tests for the pull request API client with mocked HTTP."""

import sys
from datetime import date
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sprintmetrics.api_client import PullRequestApiClient
from sprintmetrics.config import Config
from sprintmetrics.errors import FormatError, HttpError, NetworkError


def _build_client() -> PullRequestApiClient:
    config = Config(
        api_url="http://api.example:8080/",
        timeout_seconds=15,
        sprints_path=Path("sprints.json"),
    )
    return PullRequestApiClient(config=config)


def _response(
    status_code: int = 200,
    payload=None,
    text: str = "",
    content_type: str = "application/json; charset=utf-8",
):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = {"Content-Type": content_type}
    response.json.return_value = payload if payload is not None else []
    return response


def _pr_item(number: int, login: str = "oga") -> dict:
    return {
        "ID": f"PR_{number}",
        "Number": number,
        "Title": f"PR {number}",
        "BaseRefName": "main",
        "HeadRefName": f"feature/{number}",
        "Author": {"Login": login, "AvatarURL": f"https://avatars.example/{login}"},
        "Repository": {"Name": "dashboard"},
        "URL": f"https://github.example/org/dashboard/pull/{number}",
        "CreatedAt": "2024-01-01T00:00:00Z",
        "FirstReviewed": "2024-01-01T02:00:00Z",
        "LastApproved": None,
        "MergedAt": None,
    }


def test_fetch_pull_requests_builds_range_query_with_repeated_developers():
    """Verify the range query uses YYYY-MM-DD bounds and one developers param per name."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(payload=[_pr_item(1)]))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 16), ["oga", "shiiyan"])

    assert result.ok
    assert [pr.id for pr in result.pull_requests] == [1]
    call = client._session.get.call_args
    assert call.args[0] == "http://api.example:8080/api/pull_requests"
    assert call.kwargs["params"] == {
        "startdate": "2024-01-01",
        "enddate": "2024-01-16",
        "developers": ["oga", "shiiyan"],
    }
    assert call.kwargs["timeout"] == 15


def test_fetch_pull_requests_without_developers_omits_filter():
    """Verify an empty developer set sends no developers parameter."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(payload=[]))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 1), [])

    assert result.ok
    assert result.pull_requests == ()
    assert "developers" not in client._session.get.call_args.kwargs["params"]


def test_fetch_pull_requests_returns_http_error_for_non_success_status():
    """Verify non-2xx responses are returned as HttpError instead of raised."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(status_code=503, text="unavailable"))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert not result.ok
    assert isinstance(result.error, HttpError)
    assert result.error.status == 503
    assert result.pull_requests == ()
    assert client._session.get.call_count == 1


def test_fetch_pull_requests_returns_format_error_for_non_json_content_type():
    """Verify an HTML answer is reported as a FormatError."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(content_type="text/html", payload=[]))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert isinstance(result.error, FormatError)


@pytest.mark.parametrize("payload", [{"value": []}, "pull requests", 3])
def test_fetch_pull_requests_returns_format_error_for_non_array_body(payload):
    """Verify JSON bodies that are not arrays are reported as FormatError."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(payload=payload))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert isinstance(result.error, FormatError)


def test_fetch_pull_requests_returns_format_error_for_invalid_json():
    """Verify undecodable bodies are reported as FormatError."""
    client = _build_client()
    response = _response()
    response.json.side_effect = ValueError("Expecting value")
    client._session.get = Mock(return_value=response)

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert isinstance(result.error, FormatError)


def test_fetch_pull_requests_returns_network_error_on_transport_failure():
    """Verify connection failures are reported as NetworkError."""
    client = _build_client()
    client._session.get = Mock(side_effect=requests.ConnectionError("name resolution failed"))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert isinstance(result.error, NetworkError)
    assert "name resolution failed" in str(result.error)


def test_fetch_pull_requests_drops_invalid_records_with_warning():
    """Verify a record missing Author.Login is dropped while the rest are returned."""
    client = _build_client()
    broken = _pr_item(2)
    del broken["Author"]["Login"]
    client._session.get = Mock(return_value=_response(payload=[_pr_item(1), broken, _pr_item(3)]))

    result = client.fetch_pull_requests(date(2024, 1, 1), date(2024, 1, 8), ["oga"])

    assert result.ok
    assert [pr.id for pr in result.pull_requests] == [1, 3]
    assert len(result.warnings) == 1
    assert "Author.Login" in result.warnings[0]


def test_fetch_pull_requests_rejects_inverted_range():
    """Verify a start date after the end date is rejected before any request."""
    client = _build_client()
    client._session.get = Mock()

    with pytest.raises(ValueError):
        client.fetch_pull_requests(date(2024, 1, 9), date(2024, 1, 8), ["oga"])

    client._session.get.assert_not_called()
