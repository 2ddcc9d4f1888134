"""Concurrent collection of everything the status line shows."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from . import request
from .config import get_cache_dir
from .core import TranscriptState, UsageSnapshot
from .render import render
from .sources.credentials import CredentialStore
from .sources.transcript import TranscriptScanner
from .sources.usage import UsageClient
from .sources.version import VersionClient
from .store import CacheStore, FileCacheStore
from .timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Status:
    """Everything gathered for one render."""

    usage: UsageSnapshot | None
    transcript: TranscriptState
    latest_version: str | None
    context_pct: int
    model: str
    version: str | None
    lines_added: int = 0
    lines_removed: int = 0


class Orchestrator:
    """Runs the usage, transcript and version lookups side by side."""

    def __init__(
        self,
        usage_client: UsageClient | None = None,
        version_client: VersionClient | None = None,
        scanner: TranscriptScanner | None = None,
        cache: CacheStore | None = None,
    ):
        cache = cache or FileCacheStore(get_cache_dir())
        self.usage_client = usage_client or UsageClient(CredentialStore(), cache)
        self.version_client = version_client or VersionClient(cache)
        self.scanner = scanner or TranscriptScanner()

    async def gather(self, document: dict, now: datetime | None = None) -> Status:
        """Fan out to the three sources and wait for all of them.

        A source that raises is treated as unavailable; the others still render.
        """
        now = now or utcnow()
        usage, transcript, latest = await asyncio.gather(
            self.usage_client.get_usage(),
            asyncio.to_thread(self.scanner.scan, request.transcript_path(document), now),
            self.version_client.get_latest_version(),
            return_exceptions=True,
        )
        if isinstance(usage, Exception):
            logger.debug("Usage source failed", exc_info=usage)
            usage = None
        if isinstance(transcript, Exception):
            logger.debug("Transcript source failed", exc_info=transcript)
            transcript = TranscriptState()
        if isinstance(latest, Exception):
            logger.debug("Version source failed", exc_info=latest)
            latest = None
        added, removed = request.lines_changed(document)
        logger.debug(
            "Gathered usage=%s agents=%d todos=%d latest=%s",
            "ok" if usage else "unavailable", len(transcript.agents), len(transcript.todos), latest,
        )
        return Status(
            usage=usage,
            transcript=transcript,
            latest_version=latest,
            context_pct=request.context_percent(document),
            model=request.model_label(document),
            version=request.tool_version(document),
            lines_added=added,
            lines_removed=removed,
        )

    async def run(self, document: dict, now: datetime | None = None) -> str:
        now = now or utcnow()
        status = await self.gather(document, now)
        return render_status(status, now)


def render_status(status: Status, now: datetime | None = None) -> str:
    return render(
        status.usage,
        status.transcript,
        status.context_pct,
        status.model,
        version=status.version,
        latest_version=status.latest_version,
        lines_added=status.lines_added,
        lines_removed=status.lines_removed,
        now=now,
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def status_to_dict(status: Status) -> dict:
    """Convert a Status to a JSON-serializable dict."""
    usage = status.usage
    return {
        "usage": {
            "five_hour_percent": usage.five_hour_percent,
            "five_hour_reset": _iso(usage.five_hour_reset),
            "seven_day_percent": usage.seven_day_percent,
            "seven_day_reset": _iso(usage.seven_day_reset),
            "fetched_at": _iso(usage.fetched_at),
        } if usage else None,
        "transcript": {
            "session_start": _iso(status.transcript.session_start),
            "agents": [
                {
                    "id": a.id,
                    "type": a.type,
                    "model": a.model,
                    "description": a.description,
                    "status": a.status,
                    "start_time": _iso(a.start_time),
                    "end_time": _iso(a.end_time),
                }
                for a in status.transcript.agents
            ],
            "todos": [{"content": t.content, "status": t.status} for t in status.transcript.todos],
        },
        "latest_version": status.latest_version,
        "version": status.version,
        "context_percent": status.context_pct,
        "model": status.model,
        "lines_added": status.lines_added,
        "lines_removed": status.lines_removed,
    }
