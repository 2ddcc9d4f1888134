"""Latest published Claude Code release from the npm registry, cached on disk."""

import logging
import time
from typing import Callable

import httpx

from ..config import VERSION_CACHE_KEY, VERSION_CACHE_TTL, VERSION_TIMEOUT, VERSION_URL
from ..core import CacheEntry
from ..store import CacheStore

logger = logging.getLogger(__name__)


class VersionClient:
    """Looks up the latest release identifier, at most once an hour."""

    def __init__(
        self,
        cache: CacheStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self._transport = transport
        self._clock = clock

    async def get_latest_version(self) -> str | None:
        now_ms = int(self._clock() * 1000)
        entry = self.cache.get(VERSION_CACHE_KEY)
        if (
            entry is not None
            and isinstance(entry.data, str)
            and entry.data
            and entry.age_ms(now_ms) < VERSION_CACHE_TTL * 1000
        ):
            return entry.data

        latest = await self._fetch()
        # A failed lookup leaves the cache as it was.
        if latest:
            self.cache.set(VERSION_CACHE_KEY, CacheEntry(timestamp=int(self._clock() * 1000), data=latest))
        return latest

    async def _fetch(self) -> str | None:
        try:
            async with httpx.AsyncClient(timeout=VERSION_TIMEOUT, transport=self._transport) as client:
                response = await client.get(VERSION_URL, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.debug("Version lookup failed: %s", e)
            return None

        if response.status_code != 200:
            logger.debug("Registry returned %s", response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError as e:
            logger.debug("Registry returned malformed JSON: %s", e)
            return None

        version = payload.get("version") if isinstance(payload, dict) else None
        return version if isinstance(version, str) and version else None
