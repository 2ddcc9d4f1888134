"""Rate-limit usage from the Anthropic OAuth usage endpoint, cached on disk."""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from ..config import (
    API_TIMEOUT,
    USAGE_BETA_HEADER,
    USAGE_CACHE_FAILURE_TTL,
    USAGE_CACHE_KEY,
    USAGE_CACHE_TTL,
    USAGE_URL,
)
from ..core import CacheEntry, UsageSnapshot
from ..store import CacheStore
from ..timeutil import parse_iso
from .credentials import CredentialStore

logger = logging.getLogger(__name__)


def clamp_percent(value: Any) -> float:
    """Clamp a utilization value into [0, 100]; anything non-numeric becomes 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(max(0, min(100, value)))


def cache_ttl(entry: CacheEntry) -> int:
    """Lifetime of a usage cache entry in seconds."""
    return USAGE_CACHE_FAILURE_TTL if entry.error else USAGE_CACHE_TTL


class UsageClient:
    """Fetches the five-hour and seven-day utilization windows."""

    def __init__(
        self,
        credentials: CredentialStore,
        cache: CacheStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.credentials = credentials
        self.cache = cache
        self._transport = transport
        self._clock = clock

    async def get_usage(self) -> UsageSnapshot | None:
        """Return current usage, or None when it is unavailable.

        A cached entry younger than its TTL is returned without any network
        call. Every attempt that reaches the network, or fails before it,
        leaves a fresh cache entry behind.
        """
        now_ms = self._now_ms()
        entry = self.cache.get(USAGE_CACHE_KEY)
        if entry is not None and entry.age_ms(now_ms) < cache_ttl(entry) * 1000:
            if entry.error:
                return None
            snapshot = _snapshot_from_cache(entry)
            if snapshot is not None:
                return snapshot

        creds = self.credentials.load()
        if creds is None:
            logger.debug("No OAuth credentials available")
            return self._fail()

        creds = await self.credentials.ensure_fresh(creds)
        if creds is None:
            return self._fail()

        payload = await self._fetch(creds.access_token)
        if payload is None:
            return self._fail()

        snapshot = _snapshot_from_response(payload, self._now())
        self.cache.set(
            USAGE_CACHE_KEY,
            CacheEntry(timestamp=self._now_ms(), data=_snapshot_to_cache(snapshot), error=False),
        )
        return snapshot

    # ── Private helpers ──────────────────────────────────────────────

    async def _fetch(self, access_token: str) -> dict | None:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "anthropic-beta": USAGE_BETA_HEADER,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=API_TIMEOUT, transport=self._transport) as client:
                response = await client.get(USAGE_URL, headers=headers)
        except httpx.HTTPError as e:
            logger.debug("Usage request failed: %s", e)
            return None

        if response.status_code != 200:
            logger.debug("Usage endpoint returned %s", response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError as e:
            logger.debug("Usage endpoint returned malformed JSON: %s", e)
            return None
        return payload if isinstance(payload, dict) else None

    def _fail(self) -> None:
        self.cache.set(USAGE_CACHE_KEY, CacheEntry(timestamp=self._now_ms(), data=None, error=True))
        return None

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


def _window(payload: dict, name: str) -> dict:
    window = payload.get(name)
    return window if isinstance(window, dict) else {}


def _snapshot_from_response(payload: dict, fetched_at: datetime) -> UsageSnapshot:
    five_hour = _window(payload, "five_hour")
    seven_day = _window(payload, "seven_day")
    return UsageSnapshot(
        five_hour_percent=clamp_percent(five_hour.get("utilization")),
        seven_day_percent=clamp_percent(seven_day.get("utilization")),
        five_hour_reset=parse_iso(five_hour.get("resets_at")),
        seven_day_reset=parse_iso(seven_day.get("resets_at")),
        fetched_at=fetched_at,
    )


def _snapshot_to_cache(snapshot: UsageSnapshot) -> dict:
    return {
        "fiveHourPercent": snapshot.five_hour_percent,
        "fiveHourReset": snapshot.five_hour_reset.isoformat() if snapshot.five_hour_reset else None,
        "sevenDayPercent": snapshot.seven_day_percent,
        "sevenDayReset": snapshot.seven_day_reset.isoformat() if snapshot.seven_day_reset else None,
    }


def _snapshot_from_cache(entry: CacheEntry) -> UsageSnapshot | None:
    data = entry.data
    if not isinstance(data, dict):
        return None
    return UsageSnapshot(
        five_hour_percent=clamp_percent(data.get("fiveHourPercent")),
        seven_day_percent=clamp_percent(data.get("sevenDayPercent")),
        five_hour_reset=parse_iso(data.get("fiveHourReset")),
        seven_day_reset=parse_iso(data.get("sevenDayReset")),
        fetched_at=datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc),
    )
