"""Utility helpers for the CineTrack service."""

from __future__ import annotations

import json
import re
import time
from datetime import date, datetime, timezone
from typing import Any


JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
BARE_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


def now_millis() -> int:
    """Return the current time as epoch milliseconds."""

    return int(time.time() * 1000)


def iso_date_from_millis(value: int | float) -> str:
    """Return the UTC calendar date for an epoch-milliseconds timestamp."""

    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.date().isoformat()


def parse_iso_date(value: str | None) -> date | None:
    """Parse the leading ``YYYY-MM-DD`` portion of a date string."""

    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def normalize_url(url: str | None) -> str:
    """Return ``url`` with an ``https://`` scheme when none is present."""

    if not url:
        return ""
    trimmed = url.strip()
    if not trimmed:
        return ""
    if trimmed.startswith(("http://", "https://")):
        return trimmed
    return f"https://{trimmed}"


def extract_json_object(content: str) -> dict[str, Any]:
    """Extract and parse the first JSON object from the model response."""

    match = JSON_BLOCK_RE.search(content)
    if match:
        payload = match.group(1)
    else:
        match = BARE_JSON_RE.search(content)
        if not match:
            raise ValueError("No JSON object found in response")
        payload = match.group(0)

    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON payload produced by the model") from exc


def coerce_int(value: Any, *, default: int | None = None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
