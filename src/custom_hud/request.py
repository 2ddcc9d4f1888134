"""Field extraction from the status-line request document Claude Code sends on stdin."""

import math
import re
from typing import Any

_MODEL_RE = re.compile(r"(?:claude-)?(opus|sonnet|haiku)-(\d+)-(\d+)")


def _section(document: dict, key: str) -> dict:
    value = document.get(key)
    return value if isinstance(value, dict) else {}


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def context_percent(document: dict) -> int:
    """Return the context-window fill as an integer percentage in [0, 100].

    ``context_window.used_percentage`` is used when present; otherwise the
    fill is computed from the current token usage and the window size.
    """
    window = _section(document, "context_window")
    pct = _number(window.get("used_percentage"))
    if pct is not None:
        return min(100, max(0, round(pct)))

    size = _number(window.get("context_window_size"))
    if not size or size <= 0:
        return 0
    usage = window.get("current_usage")
    usage = usage if isinstance(usage, dict) else {}
    total = sum(
        _number(usage.get(key)) or 0
        for key in ("input_tokens", "cache_creation_input_tokens", "cache_read_input_tokens")
    )
    return min(100, max(0, round(total / size * 100)))


def model_label(document: dict) -> str:
    """``claude-opus-4-6`` -> ``Opus 4.6``; anything else is returned as-is."""
    model = _section(document, "model")
    model_id = model.get("id") or model.get("display_name") or "unknown"
    model_id = str(model_id)
    match = _MODEL_RE.search(model_id)
    if match:
        return f"{match.group(1).capitalize()} {match.group(2)}.{match.group(3)}"
    return model_id


def tool_version(document: dict) -> str | None:
    version = document.get("version")
    return str(version) if version else None


def transcript_path(document: dict) -> str | None:
    path = document.get("transcript_path")
    return path if isinstance(path, str) and path else None


def lines_changed(document: dict) -> tuple[int, int]:
    cost = _section(document, "cost")
    added = _number(cost.get("total_lines_added")) or 0
    removed = _number(cost.get("total_lines_removed")) or 0
    return int(added), int(removed)
