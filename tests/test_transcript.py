"""Tests for the transcript scanner."""

import json
from datetime import timedelta

from custom_hud.sources.transcript import TranscriptScanner, scan_transcript

from helpers import NOW, TranscriptBuilder, iso


class TestTranscriptScanner:
    """Tests for TranscriptScanner.scan."""

    def test_missing_file_gives_empty_state(self, tmp_path):
        state = scan_transcript(tmp_path / "nope.jsonl", now=NOW)
        assert state.session_start is None
        assert state.agents == []
        assert state.todos == []

    def test_no_path_gives_empty_state(self):
        assert scan_transcript(None, now=NOW).agents == []
        assert scan_transcript("", now=NOW).agents == []

    def test_overlong_file_name_gives_empty_state(self, tmp_path):
        state = scan_transcript(tmp_path / ("x" * 300 + ".jsonl"), now=NOW)
        assert state.session_start is None
        assert state.agents == []

    def test_single_launch_is_running(self, tmp_path, transcript):
        path = transcript.user().launch("A", minutes_ago=2).write(tmp_path / "s.jsonl")

        state = scan_transcript(path, now=NOW)

        assert [a.id for a in state.running_agents] == ["A"]
        agent = state.agents[0]
        assert agent.type == "Explore"
        assert agent.model == "haiku"
        assert agent.description == "Find auth call sites"
        assert (NOW - agent.start_time).total_seconds() > 0

    def test_direct_result_completes_agent(self, tmp_path, transcript):
        path = (
            transcript.launch("A", minutes_ago=2)
            .result("A", "Found 3 call sites.", minutes_ago=1)
            .write(tmp_path / "s.jsonl")
        )

        state = scan_transcript(path, now=NOW)

        assert state.running_agents == []
        assert state.agents[0].status == "completed"
        assert state.agents[0].end_time == NOW - timedelta(minutes=1)

    def test_result_with_block_content_completes_agent(self, tmp_path, transcript):
        path = transcript.launch("A").result("A", "ok", as_blocks=True).write(tmp_path / "s.jsonl")
        assert scan_transcript(path, now=NOW).running_agents == []

    def test_async_launch_then_completion_marker(self, tmp_path, transcript):
        path = (
            transcript.launch("A", minutes_ago=3)
            .async_ack("A", "x9f2")
            .completion("x9f2", minutes_ago=0.1)
            .write(tmp_path / "s.jsonl")
        )

        state = scan_transcript(path, now=NOW)

        assert state.running_agents == []
        assert state.agents[0].id == "A"
        assert state.agents[0].end_time == NOW - timedelta(minutes=0.1)

    def test_async_launch_stays_running_until_marker(self, tmp_path, transcript):
        path = transcript.launch("A").async_ack("A", "x9f2").write(tmp_path / "s.jsonl")
        assert [a.id for a in scan_transcript(path, now=NOW).running_agents] == ["A"]

    def test_non_completed_marker_status_keeps_running(self, tmp_path, transcript):
        path = (
            transcript.launch("A")
            .async_ack("A", "x9f2")
            .completion("x9f2", status="running")
            .write(tmp_path / "s.jsonl")
        )
        assert len(scan_transcript(path, now=NOW).running_agents) == 1

    def test_marker_for_unknown_agent_is_ignored(self, tmp_path, transcript):
        path = transcript.launch("A").completion("never-acked").write(tmp_path / "s.jsonl")
        assert len(scan_transcript(path, now=NOW).running_agents) == 1

    def test_stale_agent_is_completed_without_end_time(self, tmp_path, transcript):
        path = transcript.launch("old", minutes_ago=31).launch("new", minutes_ago=29).write(tmp_path / "s.jsonl")

        state = scan_transcript(path, now=NOW)

        by_id = {a.id: a for a in state.agents}
        assert by_id["old"].status == "completed"
        assert by_id["old"].end_time is None
        assert by_id["new"].status == "running"

    def test_todo_snapshot_replaces_previous(self, tmp_path, transcript):
        path = (
            transcript.todos([("Write tests", "in_progress"), ("Fix bug", "pending"), ("Ship", "pending")], minutes_ago=5)
            .todos([("Write tests", "completed")], minutes_ago=1)
            .write(tmp_path / "s.jsonl")
        )

        todos = scan_transcript(path, now=NOW).todos

        assert [(t.content, t.status) for t in todos] == [("Write tests", "completed")]

    def test_task_create_snapshot_counts_as_todos(self, tmp_path, transcript):
        path = transcript.todos([("Plan", "pending")], name="TaskCreate").write(tmp_path / "s.jsonl")
        assert len(scan_transcript(path, now=NOW).todos) == 1

    def test_proxy_task_launch_is_tracked(self, tmp_path, transcript):
        path = transcript.launch("P", name="proxy_Task").write(tmp_path / "s.jsonl")
        assert [a.id for a in scan_transcript(path, now=NOW).agents] == ["P"]

    def test_other_tools_are_ignored(self, tmp_path, transcript):
        path = transcript.launch("R", name="Read").write(tmp_path / "s.jsonl")
        assert scan_transcript(path, now=NOW).agents == []

    def test_model_normalization(self, tmp_path, transcript):
        path = (
            transcript.launch("o", model="claude-opus-4-6")
            .launch("s", model="sonnet")
            .launch("u", model=None)
            .write(tmp_path / "s.jsonl")
        )
        models = {a.id: a.model for a in scan_transcript(path, now=NOW).agents}
        assert models == {"o": "opus", "s": "sonnet", "u": "unknown"}

    def test_malformed_lines_are_skipped(self, tmp_path, transcript):
        path = (
            transcript.raw("{not json")
            .raw("[1, 2, 3]")
            .raw(json.dumps({"type": "assistant", "message": {"content": "plain text"}}))
            .launch("A")
            .write(tmp_path / "s.jsonl")
        )
        assert [a.id for a in scan_transcript(path, now=NOW).agents] == ["A"]

    def test_session_start_is_first_timestamped_record(self, tmp_path, transcript):
        path = (
            transcript.raw(json.dumps({"type": "file-history-snapshot", "snapshot": {}}))
            .user(minutes_ago=90)
            .launch("A", minutes_ago=2)
            .write(tmp_path / "s.jsonl")
        )
        assert scan_transcript(path, now=NOW).session_start == NOW - timedelta(minutes=90)

    def test_record_without_timestamp_starts_now(self, tmp_path, transcript):
        transcript.launch("A")
        del transcript.entries[-1]["timestamp"]
        path = transcript.write(tmp_path / "s.jsonl")

        agent = scan_transcript(path, now=NOW).agents[0]

        assert agent.start_time == NOW

    def test_running_first_then_recent_completed(self, tmp_path, transcript):
        for i in range(12):
            transcript.launch(f"done{i}", minutes_ago=20 - i).result(f"done{i}", minutes_ago=19 - i)
        transcript.launch("run1", minutes_ago=3).launch("run2", minutes_ago=2)
        path = transcript.write(tmp_path / "s.jsonl")

        agents = scan_transcript(path, now=NOW).agents

        assert len(agents) == 10
        assert [a.id for a in agents[:2]] == ["run1", "run2"]
        assert [a.id for a in agents[2:]] == [f"done{i}" for i in range(4, 12)]

    def test_only_running_agents_when_more_than_ten(self, tmp_path, transcript):
        for i in range(12):
            transcript.launch(f"run{i}", minutes_ago=10)
        transcript.launch("done", minutes_ago=5).result("done")
        path = transcript.write(tmp_path / "s.jsonl")

        agents = scan_transcript(path, now=NOW).agents

        assert [a.id for a in agents] == [f"run{i}" for i in range(10)]

    def test_tracked_agents_are_bounded(self, tmp_path, transcript):
        for i in range(150):
            transcript.launch(f"a{i}", minutes_ago=20).result(f"a{i}", minutes_ago=19)
        transcript.launch("live", minutes_ago=1)
        path = transcript.write(tmp_path / "s.jsonl")

        scanner = TranscriptScanner(capacity=100)
        state = scanner.scan(path, now=NOW)

        assert [a.id for a in state.running_agents] == ["live"]
        assert len(state.agents) == 10


class TestLargeTranscripts:
    """Files above the tail threshold are read head + tail only."""

    def _write_large(self, path, head, tail, filler_bytes):
        filler = json.dumps({"type": "progress", "data": "x" * 200})
        count = filler_bytes // (len(filler) + 1) + 1
        lines = [json.dumps(e) for e in head] + [filler] * count + [json.dumps(e) for e in tail]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def test_session_start_recovered_from_first_line(self, tmp_path):
        head = TranscriptBuilder().user(minutes_ago=600).launch("early", minutes_ago=599).entries
        tail = TranscriptBuilder().launch("late", minutes_ago=1).entries
        path = self._write_large(tmp_path / "big.jsonl", head, tail, filler_bytes=600 * 1024)

        state = scan_transcript(path, now=NOW)

        assert path.stat().st_size > 512 * 1024
        assert state.session_start == NOW - timedelta(minutes=600)
        assert [a.id for a in state.agents] == ["late"]

    def test_small_tail_window(self, tmp_path):
        head = TranscriptBuilder().user(minutes_ago=120).entries
        tail = TranscriptBuilder().launch("A", minutes_ago=2).async_ack("A", "bg1").completion("bg1").entries
        path = self._write_large(tmp_path / "big.jsonl", head, tail, filler_bytes=8 * 1024)

        state = TranscriptScanner(tail_bytes=4096).scan(path, now=NOW)

        assert state.session_start == NOW - timedelta(minutes=120)
        assert state.agents[0].id == "A"
        assert state.agents[0].status == "completed"

    def test_untimestamped_first_line_falls_back_to_tail(self, tmp_path):
        head = [{"type": "file-history-snapshot", "snapshot": {}}]
        tail = [{"type": "user", "timestamp": iso(NOW - timedelta(minutes=7)), "message": {"content": "hi"}}]
        path = self._write_large(tmp_path / "big.jsonl", head, tail, filler_bytes=8 * 1024)

        state = TranscriptScanner(tail_bytes=4096).scan(path, now=NOW)

        assert state.session_start == NOW - timedelta(minutes=7)
