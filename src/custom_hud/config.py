"""Filesystem locations, remote endpoints and tuning constants."""

import os
from pathlib import Path

# Cache lifetimes (seconds)
USAGE_CACHE_TTL = 60
USAGE_CACHE_FAILURE_TTL = 15
VERSION_CACHE_TTL = 3600

# Network timeouts (seconds)
API_TIMEOUT = 8.0
VERSION_TIMEOUT = 3.0

# Transcript scanning
MAX_TAIL_BYTES = 512 * 1024
FIRST_LINE_BYTES = 4096
MAX_TRACKED_AGENTS = 100
MAX_REPORTED_AGENTS = 10
STALE_AGENT_SECONDS = 30 * 60

# Rendering
MAX_AGENT_LINES = 5

OAUTH_CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"
OAUTH_TOKEN_URL = "https://platform.claude.com/v1/oauth/token"
USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
USAGE_BETA_HEADER = "oauth-2025-04-20"
VERSION_URL = "https://registry.npmjs.org/@anthropic-ai/claude-code/latest"

USAGE_CACHE_KEY = "usage"
VERSION_CACHE_KEY = "version"


def get_claude_dir() -> Path:
    """Return Claude Code's configuration directory."""
    env = os.environ.get("CUSTOM_HUD_CLAUDE_DIR")
    if env:
        return Path(env)

    return Path.home() / ".claude"


def get_credentials_path() -> Path:
    """Return the path to the OAuth credentials document."""
    env = os.environ.get("CUSTOM_HUD_CREDENTIALS_PATH")
    if env:
        return Path(env)

    return get_claude_dir() / ".credentials.json"


def get_cache_dir() -> Path:
    """Return the directory holding the usage and version caches."""
    env = os.environ.get("CUSTOM_HUD_CACHE_DIR")
    if env:
        return Path(env)

    return get_claude_dir() / "hud"


def debug_enabled() -> bool:
    return os.environ.get("CUSTOM_HUD_DEBUG", "").lower() in ("1", "true", "yes")
