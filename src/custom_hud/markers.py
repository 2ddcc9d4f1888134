"""Parser for the markers Claude Code embeds in tool-result text.

Background agents are correlated through two shapes of free text, which make
up lexicon version 1:

``LaunchAck``
    The direct result of a background ``Task`` call, e.g.::

        Async agent launched successfully.
        agentId: a1b2c3 (use this to check on the agent)

``CompletionMarker``
    A later result (typically from ``TaskOutput``) reporting on that agent::

        <task_id>a1b2c3</task_id> ... <status>completed</status>

If Claude Code changes these shapes, bump ``LEXICON_VERSION`` alongside the
patterns below; a result that matches nothing yields no events.
"""

import re
from dataclasses import dataclass
from typing import Any

LEXICON_VERSION = 1

LAUNCH_ACK_PHRASE = "Async agent launched"
_AGENT_ID_RE = re.compile(r"agentId:\s*([a-zA-Z0-9]+)")
_TASK_ID_RE = re.compile(r"<task_id>([^<]+)</task_id>")
_STATUS_RE = re.compile(r"<status>([^<]+)</status>")


@dataclass(frozen=True)
class LaunchAck:
    """A background launch was accepted under ``agent_id``."""

    agent_id: str


@dataclass(frozen=True)
class CompletionMarker:
    """A status report for the background agent ``agent_id``."""

    agent_id: str
    status: str

    @property
    def completed(self) -> bool:
        return self.status == "completed"


def result_text(content: Any) -> str:
    """Flatten a tool_result ``content`` field (string or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for sub in content:
            if isinstance(sub, dict):
                text = sub.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "".join(parts)
    return ""


def parse_launch_ack(text: str) -> LaunchAck | None:
    if LAUNCH_ACK_PHRASE not in text:
        return None
    match = _AGENT_ID_RE.search(text)
    return LaunchAck(match.group(1)) if match else None


def is_launch_ack(text: str) -> bool:
    """True for any background-launch acknowledgment, even without a usable id."""
    return LAUNCH_ACK_PHRASE in text


def parse_completion_marker(text: str) -> CompletionMarker | None:
    task_id = _TASK_ID_RE.search(text)
    status = _STATUS_RE.search(text)
    if not task_id or not status:
        return None
    return CompletionMarker(agent_id=task_id.group(1).strip(), status=status.group(1).strip())

