"""Configuration parsing and validation for the sprint PR metrics dashboard."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Set, Tuple

from .errors import ConfigurationError
from .models import Member, Sprint

DEFAULT_API_URL = "http://localhost:8080"
API_URL_ENV_VAR = "SPRINT_METRICS_API_URL"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the dashboard."""

    api_url: str
    timeout_seconds: int
    sprints_path: Path


def load_config(
    api_url: Optional[str],
    timeout_seconds: int,
    sprints_path: str,
) -> Config:
    """Build and validate application configuration.

    Args:
        api_url: Base URL of the pull request API. Falls back to the
            ``SPRINT_METRICS_API_URL`` environment variable, then to
            ``http://localhost:8080``.
        timeout_seconds: Positive per-request timeout.
        sprints_path: Path to the JSON sprint definition file.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If the timeout is not positive or the URL is not HTTP(S).
    """
    if timeout_seconds <= 0:
        raise ConfigurationError(
            "Invalid value for 'timeout_seconds': expected an integer greater than 0."
        )

    resolved_url = (api_url or os.getenv(API_URL_ENV_VAR, "").strip() or DEFAULT_API_URL).rstrip("/")
    if not resolved_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid API URL '{resolved_url}': expected an http:// or https:// URL."
        )

    return Config(
        api_url=resolved_url,
        timeout_seconds=timeout_seconds,
        sprints_path=Path(sprints_path),
    )


def _parse_date(value: Any, field_name: str, index: int) -> date:
    if not isinstance(value, str):
        raise ConfigurationError(f"Sprint #{index}: '{field_name}' must be a YYYY-MM-DD string.")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ConfigurationError(
            f"Sprint #{index}: '{field_name}' is not a valid date: {value!r}"
        ) from exc


def _parse_members(raw_members: Any, index: int) -> Tuple[Member, ...]:
    if raw_members is None:
        return ()
    if not isinstance(raw_members, list):
        raise ConfigurationError(f"Sprint #{index}: 'members' must be a list.")

    members: List[Member] = []
    seen: Set[str] = set()
    for raw_member in raw_members:
        name = raw_member.get("name") if isinstance(raw_member, dict) else None
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"Sprint #{index}: every member needs a non-empty 'name'.")
        name = name.strip()
        if name in seen:
            raise ConfigurationError(f"Sprint #{index}: duplicate member '{name}'.")
        seen.add(name)

        icon_url = raw_member.get("iconURL")
        members.append(Member(name=name, icon_url=icon_url if isinstance(icon_url, str) else None))

    return tuple(members)


def parse_sprints(payload: Any) -> Tuple[Sprint, ...]:
    """Validate a decoded sprint definition document.

    Raises:
        ConfigurationError: If the document is not a list of well-formed sprints.
    """
    if not isinstance(payload, list):
        raise ConfigurationError("Sprint definitions must be a JSON array.")

    sprints: List[Sprint] = []
    seen_ids: Set[int] = set()

    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ConfigurationError(f"Sprint #{index}: expected an object.")

        sprint_id = item.get("id")
        if isinstance(sprint_id, bool) or not isinstance(sprint_id, int):
            raise ConfigurationError(f"Sprint #{index}: 'id' must be an integer.")
        if sprint_id in seen_ids:
            raise ConfigurationError(f"Duplicate sprint id {sprint_id}.")
        seen_ids.add(sprint_id)

        sprints.append(
            Sprint(
                id=sprint_id,
                start_date=_parse_date(item.get("startDate"), "startDate", index),
                end_date=_parse_date(item.get("endDate"), "endDate", index),
                members=_parse_members(item.get("members"), index),
            )
        )

    return tuple(sprints)


def load_sprints(path: Path) -> Tuple[Sprint, ...]:
    """Read and validate the sprint definition file at ``path``."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Unable to read sprint file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Sprint file '{path}' is not valid JSON: {exc}") from exc

    return parse_sprints(payload)
