"""custom-hud: a Claude Code status line."""

__version__ = "0.1.0"
