"""Shared test fixtures for custom-hud."""

import json

import pytest

from helpers import NOW_TS, TranscriptBuilder


@pytest.fixture
def transcript():
    """A fresh TranscriptBuilder anchored at NOW."""
    return TranscriptBuilder()


@pytest.fixture
def credentials_file(tmp_path):
    """A credentials document in Claude Code's nested layout, with unrelated keys."""
    path = tmp_path / ".credentials.json"
    document = {
        "claudeAiOauth": {
            "accessToken": "sk-ant-oat01-current",
            "refreshToken": "sk-ant-ort01-refresh",
            "expiresAt": int((NOW_TS + 3600) * 1000),
            "scopes": ["user:inference", "user:profile"],
            "subscriptionType": "max",
        },
        "mcpOAuth": {"server": {"accessToken": "unrelated"}},
    }
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def hud_home(tmp_path, monkeypatch):
    """Point every custom-hud location at a temporary Claude directory."""
    claude_dir = tmp_path / "claude"
    claude_dir.mkdir()
    monkeypatch.setenv("CUSTOM_HUD_CLAUDE_DIR", str(claude_dir))
    monkeypatch.delenv("CUSTOM_HUD_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("CUSTOM_HUD_CACHE_DIR", raising=False)
    return claude_dir
