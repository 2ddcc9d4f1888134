"""Render the status line and agent detail lines."""

from datetime import datetime

import click

from .config import MAX_AGENT_LINES
from .core import Agent, TranscriptState, UsageSnapshot
from .timeutil import utcnow

SEPARATOR = " " + click.style("|", dim=True) + " "
PLACEHOLDER = click.style("[HUD] waiting for data...", dim=True)

# (warn, critical) thresholds, inclusive lower bounds
RATE_LIMIT_THRESHOLDS = (60, 80)
CONTEXT_THRESHOLDS = (70, 85)

_BADGES = {
    "opus": ("O", {"fg": "magenta"}),
    "sonnet": ("s", {"fg": "cyan"}),
    "haiku": ("h", {"fg": "green"}),
}
_UNKNOWN_BADGE = ("?", {"dim": True})


def percent_color(pct: float, thresholds: tuple[int, int]) -> str:
    warn, critical = thresholds
    if pct >= critical:
        return "red"
    if pct >= warn:
        return "yellow"
    return "green"


def rate_limit_color(pct: float) -> str:
    return percent_color(pct, RATE_LIMIT_THRESHOLDS)


def context_color(pct: float) -> str:
    return percent_color(pct, CONTEXT_THRESHOLDS)


def format_duration(seconds: float) -> str:
    """45 -> "45s", 125 -> "2m05s", 3720 -> "1h02m"."""
    total = int(max(0, seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def version_suffix(version: str | None, latest: str | None) -> str | None:
    """Return "latest", "update avail", or None when nothing can be said."""
    if not latest:
        return None
    if not version or version == latest:
        return "latest"
    return "update avail"


def _label(text: str) -> str:
    return click.style(text, fg="bright_black")


def _reset_countdown(reset: datetime | None, now: datetime) -> str:
    if reset is None:
        return ""
    remaining = (reset - now).total_seconds()
    if remaining <= 0:
        return ""
    return " " + click.style(f"({format_duration(remaining)})", dim=True)


def _rate_limit_segments(usage: UsageSnapshot | None, now: datetime) -> list[str]:
    if usage is None or usage.error:
        return [_label("5h: --"), _label("7d: --")]

    segments = []
    for name, pct, reset in (
        ("5h", usage.five_hour_percent, usage.five_hour_reset),
        ("7d", usage.seven_day_percent, usage.seven_day_reset),
    ):
        value = click.style(f"{round(pct)}%", fg=rate_limit_color(pct))
        segments.append(f"{_label(name + ':')} {value}{_reset_countdown(reset, now)}")
    return segments


def _changes_segment(added: int, removed: int) -> str:
    if not added and not removed:
        return f"{_label('Changes:')} {click.style('+0/-0', dim=True)}"
    return "{} {}{}{}".format(
        _label("Changes:"),
        click.style(f"+{added}", fg="green"),
        click.style("/", dim=True),
        click.style(f"-{removed}", fg="red"),
    )


def _todo_segment(transcript: TranscriptState) -> str | None:
    total = len(transcript.todos)
    if not total:
        return None
    done = sum(1 for t in transcript.todos if t.status == "completed")
    color = "green" if done == total else "yellow"
    return f"{_label('Todos:')} {click.style(f'{done}/{total}', fg=color)}"


def _version_segment(version: str | None, latest: str | None) -> str | None:
    shown = version or latest
    if not shown:
        return None
    segment = click.style(f"CC v{shown}", dim=True)
    suffix = version_suffix(version, latest)
    if suffix == "latest":
        segment += " " + click.style("(latest)", dim=True)
    elif suffix == "update avail":
        segment += " " + click.style("(update avail)", fg="yellow")
    return segment


def agent_line(agent: Agent, last: bool, now: datetime) -> str:
    prefix = "└─" if last else "├─"
    letter, style = _BADGES.get(agent.model, _UNKNOWN_BADGE)
    elapsed = format_duration((now - agent.start_time).total_seconds())
    agent_type = (agent.type or "agent")[:14].ljust(14)
    description = (agent.description or "")[:45]
    return "{} {} {} {}   {}".format(
        click.style(prefix, dim=True),
        click.style(letter, **style),
        click.style(agent_type, fg="white"),
        click.style(elapsed.rjust(5), dim=True),
        click.style(description, fg="bright_black"),
    )


def render(
    usage: UsageSnapshot | None,
    transcript: TranscriptState,
    context_pct: int,
    model: str,
    version: str | None = None,
    latest_version: str | None = None,
    lines_added: int = 0,
    lines_removed: int = 0,
    now: datetime | None = None,
) -> str:
    """Compose the primary status line and up to five running-agent lines."""
    now = now or utcnow()
    parts = _rate_limit_segments(usage, now)
    parts.append(f"{_label('Context:')} {click.style(f'{context_pct}%', fg=context_color(context_pct))}")
    parts.append(_changes_segment(lines_added, lines_removed))

    running = transcript.running_agents
    if running:
        parts.append(f"{_label('Agents:')} {click.style(str(len(running)), fg='cyan')}")

    todos = _todo_segment(transcript)
    if todos:
        parts.append(todos)

    parts.append(click.style(model, dim=True))

    version_part = _version_segment(version, latest_version)
    if version_part:
        parts.append(version_part)

    lines = [SEPARATOR.join(parts)]
    shown = running[:MAX_AGENT_LINES]
    for i, agent in enumerate(shown):
        lines.append(agent_line(agent, last=i == len(shown) - 1, now=now))
    return "\n".join(lines)
