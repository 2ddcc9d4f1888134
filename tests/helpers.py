"""Builders and constants shared by the test modules."""

import json
from datetime import datetime, timedelta, timezone

import httpx

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
NOW_TS = NOW.timestamp()


def iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


class TranscriptBuilder:
    """Builds Claude Code transcript entries shaped like real JSONL lines."""

    def __init__(self, now: datetime = NOW):
        self.now = now
        self.entries: list = []

    def at(self, minutes_ago: float) -> str:
        return iso(self.now - timedelta(minutes=minutes_ago))

    def user(self, text="Help me refactor the auth module", minutes_ago=60.0):
        self.entries.append({
            "type": "user",
            "timestamp": self.at(minutes_ago),
            "message": {"role": "user", "content": text},
        })
        return self

    def launch(self, tool_id, minutes_ago=1.0, subagent_type="Explore", model="haiku",
               description="Find auth call sites", name="Task"):
        self.entries.append({
            "type": "assistant",
            "timestamp": self.at(minutes_ago),
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "Launching an agent."},
                    {
                        "type": "tool_use",
                        "id": tool_id,
                        "name": name,
                        "input": {
                            "subagent_type": subagent_type,
                            "model": model,
                            "description": description,
                            "prompt": "...",
                        },
                    },
                ],
            },
        })
        return self

    def result(self, tool_id, text="Done.", minutes_ago=0.5, as_blocks=False):
        content = [{"type": "text", "text": text}] if as_blocks else text
        self.entries.append({
            "type": "user",
            "timestamp": self.at(minutes_ago),
            "message": {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": tool_id, "content": content}],
            },
        })
        return self

    def async_ack(self, tool_id, agent_id, minutes_ago=0.9):
        return self.result(
            tool_id,
            f"Async agent launched successfully.\nagentId: {agent_id} (use this to check on the agent)",
            minutes_ago=minutes_ago,
            as_blocks=True,
        )

    def completion(self, agent_id, status="completed", tool_id="toolu_output", minutes_ago=0.2):
        return self.result(
            tool_id,
            f"<retrieval_status>success</retrieval_status><task_id>{agent_id}</task_id>"
            f"<status>{status}</status><output>all done</output>",
            minutes_ago=minutes_ago,
        )

    def todos(self, items, minutes_ago=0.5, name="TodoWrite"):
        self.entries.append({
            "type": "assistant",
            "timestamp": self.at(minutes_ago),
            "message": {
                "role": "assistant",
                "content": [{
                    "type": "tool_use",
                    "id": f"toolu_todo_{len(self.entries)}",
                    "name": name,
                    "input": {"todos": [
                        {"content": content, "status": status, "activeForm": content}
                        for content, status in items
                    ]},
                }],
            },
        })
        return self

    def raw(self, line):
        self.entries.append(line)
        return self

    def write(self, path):
        lines = [e if isinstance(e, str) else json.dumps(e) for e in self.entries]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path



class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def record(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def failing_handler(request):
    raise AssertionError(f"unexpected network call: {request.method} {request.url}")
