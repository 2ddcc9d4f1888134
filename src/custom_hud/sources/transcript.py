"""Claude Code transcript scanner.

A transcript is the session's append-only ``.jsonl`` log. Only a few block
kinds matter for the HUD:

- ``tool_use`` named ``Task``/``proxy_Task``: a sub-agent launch, keyed by the
  block id.
- ``tool_use`` named ``TodoWrite``/``TaskCreate``: a full replacement of the
  todo list.
- ``tool_result``: either completes the agent whose ``tool_use_id`` it
  answers, or acknowledges a background launch (see ``custom_hud.markers``).

Files above ``MAX_TAIL_BYTES`` are not read in full: the first line supplies
the session start and only the trailing window is scanned for events, so
agents and todos older than that window are not seen.
"""

import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from ..agents import AgentTable
from ..config import (
    FIRST_LINE_BYTES,
    MAX_REPORTED_AGENTS,
    MAX_TAIL_BYTES,
    MAX_TRACKED_AGENTS,
    STALE_AGENT_SECONDS,
)
from ..core import Agent, TodoItem, TranscriptState, normalize_model
from ..markers import is_launch_ack, parse_completion_marker, parse_launch_ack, result_text
from ..timeutil import parse_iso, utcnow

logger = logging.getLogger(__name__)

LAUNCH_TOOLS = ("Task", "proxy_Task")
TODO_TOOLS = ("TodoWrite", "TaskCreate")


class TranscriptScanner:
    """Reconstructs session start, live agents and todos from a transcript."""

    def __init__(
        self,
        *,
        tail_bytes: int = MAX_TAIL_BYTES,
        capacity: int = MAX_TRACKED_AGENTS,
        max_reported: int = MAX_REPORTED_AGENTS,
        stale_after: timedelta = timedelta(seconds=STALE_AGENT_SECONDS),
    ):
        self.tail_bytes = tail_bytes
        self.capacity = capacity
        self.max_reported = max_reported
        self.stale_after = stale_after

    def scan(self, path: str | os.PathLike | None, now: datetime | None = None) -> TranscriptState:
        """Scan ``path``; a missing or unreadable file yields an empty state."""
        now = now or utcnow()
        if not path:
            return TranscriptState()
        path = Path(path)
        try:
            if not path.is_file():
                return TranscriptState()
        except OSError as e:
            logger.debug("Transcript %s is not accessible: %s", path, e)
            return TranscriptState()

        scan = _Scan(self.capacity, now)
        try:
            size = path.stat().st_size
            if size > self.tail_bytes:
                scan.session_start = _first_line_timestamp(path)
                for line in _read_tail_lines(path, size, self.tail_bytes):
                    scan.process_line(line)
            else:
                with path.open(encoding="utf-8", errors="replace") as f:
                    for line in f:
                        scan.process_line(line)
        except OSError as e:
            logger.debug("Transcript %s only partially read: %s", path, e)

        return scan.finish(self.stale_after, self.max_reported)


def scan_transcript(path: str | os.PathLike | None, now: datetime | None = None) -> TranscriptState:
    """Convenience wrapper using the default limits."""
    return TranscriptScanner().scan(path, now)


class _Scan:
    """Mutable state of one scan; discarded once the TranscriptState is built."""

    def __init__(self, capacity: int, now: datetime):
        self.now = now
        self.session_start: datetime | None = None
        self.agents = AgentTable(capacity)
        self.background: dict[str, str] = {}  # launch-ack agent id -> tool_use id
        self.todos: list[TodoItem] = []

    def process_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            return
        if not isinstance(entry, dict):
            return

        timestamp = parse_iso(entry.get("timestamp"))
        if self.session_start is None and timestamp is not None:
            self.session_start = timestamp
        ts = timestamp or self.now

        message = entry.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, list):
            return

        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "tool_use":
                self._tool_use(block, ts)
            elif block_type == "tool_result":
                self._tool_result(block, ts)

    def _tool_use(self, block: dict, ts: datetime) -> None:
        block_id = block.get("id")
        name = block.get("name")
        if not isinstance(block_id, str) or not block_id or not name:
            return
        tool_input = block.get("input")
        if not isinstance(tool_input, dict):
            tool_input = {}

        if name in LAUNCH_TOOLS:
            self.agents.insert(Agent(
                id=block_id,
                type=_text(tool_input.get("subagent_type")) or "unknown",
                model=normalize_model(_text(tool_input.get("model"))),
                description=_text(tool_input.get("description")),
                start_time=ts,
            ))
        elif name in TODO_TOOLS:
            todos = tool_input.get("todos")
            if isinstance(todos, list):
                self.todos = [
                    TodoItem(content=_text(t.get("content")), status=_text(t.get("status")))
                    for t in todos
                    if isinstance(t, dict)
                ]

    def _tool_result(self, block: dict, ts: datetime) -> None:
        text = result_text(block.get("content"))

        tool_use_id = block.get("tool_use_id")
        agent = self.agents.get(tool_use_id) if isinstance(tool_use_id, str) else None
        if agent is not None:
            if is_launch_ack(text):
                ack = parse_launch_ack(text)
                if ack:
                    self.background[ack.agent_id] = agent.id
            else:
                agent.status = "completed"
                agent.end_time = ts

        marker = parse_completion_marker(text)
        if marker and marker.completed:
            original = self.background.get(marker.agent_id)
            background_agent = self.agents.get(original) if original else None
            if background_agent is not None and background_agent.running:
                background_agent.status = "completed"
                background_agent.end_time = ts

    def finish(self, stale_after: timedelta, max_reported: int) -> TranscriptState:
        for agent in self.agents:
            if agent.running and self.now - agent.start_time > stale_after:
                agent.status = "completed"

        running = [a for a in self.agents if a.running]
        completed = [a for a in self.agents if not a.running]
        room = max(0, max_reported - len(running))
        recent = completed[len(completed) - room:] if room else []
        return TranscriptState(
            session_start=self.session_start,
            agents=(running + recent)[:max_reported],
            todos=self.todos,
        )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _first_line_timestamp(path: Path) -> datetime | None:
    with path.open("rb") as f:
        head = f.read(FIRST_LINE_BYTES)
    first_line = head.decode("utf-8", errors="replace").split("\n", 1)[0].strip()
    if not first_line:
        return None
    try:
        entry = json.loads(first_line)
    except json.JSONDecodeError:
        return None
    return parse_iso(entry.get("timestamp")) if isinstance(entry, dict) else None


def _read_tail_lines(path: Path, size: int, max_bytes: int) -> list[str]:
    """Return the lines of the last ``max_bytes`` of ``path``.

    The first line of the window is dropped when the window does not start
    at the beginning of the file, since it is most likely cut short.
    """
    start = max(0, size - max_bytes)
    with path.open("rb") as f:
        f.seek(start)
        data = f.read(size - start)
    lines = data.decode("utf-8", errors="replace").split("\n")
    if start > 0 and lines:
        lines.pop(0)
    return lines
