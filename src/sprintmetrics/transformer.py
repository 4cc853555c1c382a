"""Validation and conversion of raw pull request API records.

Records are checked against an explicit schema before conversion so that a
malformed record is rejected deterministically instead of failing on an
incidental attribute access further down the pipeline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .errors import InvalidRecord
from .models import PullRequest

logger = logging.getLogger(__name__)

# Seconds fractions of any length, e.g. Go's RFC3339Nano ".5" or ".123456789".
_FRACTION_PATTERN = re.compile(r"(?<=T\d{2}:\d{2}:\d{2})\.(\d+)")

_REQUIRED_STRING_FIELDS: Tuple[Tuple[str, ...], ...] = (
    ("Title",),
    ("HeadRefName",),
    ("URL",),
    ("Author", "Login"),
    ("Author", "AvatarURL"),
    ("Repository", "Name"),
)


@dataclass(frozen=True, slots=True)
class RecordValidation:
    """Tagged outcome of a schema check on one raw record."""

    ok: bool
    problems: Tuple[str, ...] = ()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into a timezone-aware UTC datetime.

    ``None``, empty strings, non-string values and unparsable strings all map
    to ``None``. Naive timestamps are treated as UTC.
    """
    if not value or not isinstance(value, str):
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    normalized = _FRACTION_PATTERN.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), normalized)
    try:
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def _lookup(raw: Mapping[str, Any], path: Tuple[str, ...]) -> Any:
    value: Any = raw
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def validate_record(raw: Any) -> RecordValidation:
    """Check a raw API record for the fields required to build a PullRequest."""
    if not isinstance(raw, Mapping):
        return RecordValidation(ok=False, problems=(f"expected an object, got {type(raw).__name__}",))

    problems: List[str] = []

    number = raw.get("Number")
    if isinstance(number, bool) or not isinstance(number, int):
        problems.append("'Number' must be an integer")

    for path in _REQUIRED_STRING_FIELDS:
        value = _lookup(raw, path)
        if not isinstance(value, str) or not value:
            problems.append(f"'{'.'.join(path)}' must be a non-empty string")

    created = raw.get("CreatedAt")
    if not isinstance(created, str) or not created:
        problems.append("'CreatedAt' must be a non-empty string")
    elif parse_datetime(created) is None:
        problems.append(f"'CreatedAt' is not an ISO-8601 timestamp: {created!r}")

    return RecordValidation(ok=not problems, problems=tuple(problems))


def transform_pull_request(raw: Mapping[str, Any]) -> PullRequest:
    """Convert one raw API record into a ``PullRequest``.

    Raises:
        InvalidRecord: If the record fails schema validation.
    """
    validation = validate_record(raw)
    if not validation.ok:
        record_id = raw.get("Number") if isinstance(raw, Mapping) else None
        raise InvalidRecord(validation.problems, record_id=record_id)

    created = parse_datetime(raw["CreatedAt"])
    if created is None:
        raise InvalidRecord(["'CreatedAt' is not an ISO-8601 timestamp"], record_id=raw["Number"])

    base_branch = raw.get("BaseRefName")

    return PullRequest(
        id=raw["Number"],
        title=raw["Title"],
        branch_name=raw["HeadRefName"],
        url=raw["URL"],
        username=raw["Author"]["Login"],
        icon_url=raw["Author"]["AvatarURL"],
        repository=raw["Repository"]["Name"],
        created=created,
        first_reviewed=parse_datetime(raw.get("FirstReviewed")),
        last_approved=parse_datetime(raw.get("LastApproved")),
        merged=parse_datetime(raw.get("MergedAt")),
        base_branch_name=base_branch if isinstance(base_branch, str) else None,
        additions=_optional_int(raw.get("Additions")),
        deletions=_optional_int(raw.get("Deletions")),
    )


def transform_records(items: Iterable[Any]) -> Tuple[List[PullRequest], List[str]]:
    """Transform raw records, dropping invalid ones.

    Returns:
        ``(pull_requests, warnings)`` where ``warnings`` holds one message per
        dropped record.
    """
    pull_requests: List[PullRequest] = []
    warnings: List[str] = []

    for index, item in enumerate(items):
        try:
            pull_requests.append(transform_pull_request(item))
        except InvalidRecord as exc:
            warnings.append(str(exc))
            logger.warning(
                "Dropping invalid pull request record",
                extra={"index": index, "record_id": exc.record_id, "problems": exc.problems},
            )

    return pull_requests, warnings
