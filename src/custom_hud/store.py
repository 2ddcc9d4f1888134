"""Key-value stores for the on-disk caches."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .core import CacheEntry

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Timestamped key-value storage shared across invocations.

    Each key holds one self-consistent ``CacheEntry``; a write replaces the
    whole entry, so readers see either the previous or the new snapshot.
    """

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under ``key``, or None if absent or unreadable."""
        ...

    @abstractmethod
    def set(self, key: str, entry: CacheEntry) -> None:
        """Replace the entry stored under ``key``."""
        ...


class FileCacheStore(CacheStore):
    """One JSON document per key, ``<directory>/.<key>-cache.json``."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f".{key}-cache.json"

    def get(self, key: str) -> CacheEntry | None:
        path = self.path_for(key)
        try:
            if not path.exists():
                return None
            document = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.debug("Ignoring unreadable cache %s: %s", path, e)
            return None
        return _entry_from_dict(document)

    def set(self, key: str, entry: CacheEntry) -> None:
        document: dict[str, Any] = {"timestamp": entry.timestamp, "data": entry.data}
        if entry.error is not None:
            document["error"] = entry.error
        try:
            write_json_atomic(self.path_for(key), document)
        except OSError as e:
            logger.debug("Failed to write cache %s: %s", self.path_for(key), e)


class MemoryCacheStore(CacheStore):
    """In-process store, used in place of the cache files in tests."""

    def __init__(self, entries: dict[str, CacheEntry] | None = None):
        self.entries: dict[str, CacheEntry] = dict(entries or {})
        self.writes: list[tuple[str, CacheEntry]] = []

    def get(self, key: str) -> CacheEntry | None:
        return self.entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self.entries[key] = entry
        self.writes.append((key, entry))


def write_json_atomic(path: Path, document: Any, indent: int | None = None) -> None:
    """Write ``document`` to ``path`` via a sibling temp file and ``os.replace``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=indent)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _entry_from_dict(document: Any) -> CacheEntry | None:
    if not isinstance(document, dict):
        return None
    timestamp = document.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        return None
    error = document.get("error")
    return CacheEntry(
        timestamp=int(timestamp),
        data=document.get("data"),
        error=bool(error) if error is not None else None,
    )
