"""Core data models for custom-hud."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

MODELS = ("opus", "sonnet", "haiku")


@dataclass
class Credentials:
    """An OAuth credential pair as stored by Claude Code."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch milliseconds

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at is not None and self.expires_at <= now_ms


@dataclass
class UsageSnapshot:
    """Utilization of the two rolling rate-limit windows."""

    five_hour_percent: float
    seven_day_percent: float
    five_hour_reset: Optional[datetime] = None
    seven_day_reset: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
    error: bool = False


@dataclass
class Agent:
    """A background sub-task launched during the session."""

    id: str
    type: str
    model: str  # "opus" | "sonnet" | "haiku" | "unknown"
    description: str
    start_time: datetime
    status: str = "running"  # "running" | "completed"
    end_time: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self.status == "running"


@dataclass
class TodoItem:
    """One entry of the latest task-list snapshot."""

    content: str
    status: str  # "pending" | "in_progress" | "completed" | ...


@dataclass
class TranscriptState:
    """What a transcript scan recovered."""

    session_start: Optional[datetime] = None
    agents: list[Agent] = field(default_factory=list)
    todos: list[TodoItem] = field(default_factory=list)

    @property
    def running_agents(self) -> list[Agent]:
        return [a for a in self.agents if a.running]


@dataclass
class CacheEntry:
    """A timestamped cache payload."""

    timestamp: int  # epoch milliseconds
    data: Any = None
    error: Optional[bool] = None  # None for caches without a failure marker

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp


def normalize_model(name: Optional[str]) -> str:
    """Map a free-form model name onto opus/sonnet/haiku/unknown."""
    if not name:
        return "unknown"
    lowered = name.lower()
    for model in MODELS:
        if model in lowered:
            return model
    return "unknown"
