"""Timestamp helpers."""

from datetime import datetime, timezone
from typing import Any


def parse_iso(value: Any) -> datetime | None:
    """Parse an ISO 8601 datetime string; anything unparseable becomes None.

    Naive values are taken to be UTC.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
