"""Keyed cache of server query results."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Protocol, Tuple

logger = logging.getLogger("userdesk.cache")

CacheKey = Tuple[Hashable, ...]


@dataclass
class CacheEntry:
    value: Any
    stale: bool = False
    version: int = 0


class CacheService(Protocol):
    """Operations the sync core needs from a server-state cache."""

    def read(self, key: CacheKey) -> Optional[CacheEntry]:
        ...

    def write(self, key: CacheKey, value: Any) -> None:
        ...

    def invalidate(self, key: CacheKey) -> int:
        ...

    def fetch(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        ...


def _matches(prefix: CacheKey, key: CacheKey) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    """Store query results by key and re-fetch them once invalidated.

    Invalidation matches by key prefix, so invalidating ``("users",)`` also
    marks ``("users", "u1")`` stale.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._versions: Dict[CacheKey, int] = {}
        self._lock = threading.Lock()

    def read(self, key: CacheKey) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(tuple(key))
            if entry is None:
                return None
            return CacheEntry(value=entry.value, stale=entry.stale, version=entry.version)

    def write(self, key: CacheKey, value: Any) -> None:
        key = tuple(key)
        with self._lock:
            version = self._bump(key)
            self._entries[key] = CacheEntry(value=value, version=version)

    def invalidate(self, key: CacheKey) -> int:
        """Mark every entry under ``key`` stale and return how many matched."""

        prefix = tuple(key)
        count = 0
        with self._lock:
            for existing in list(self._versions):
                if _matches(prefix, existing):
                    self._bump(existing)
            for existing, entry in self._entries.items():
                if _matches(prefix, existing):
                    entry.stale = True
                    count += 1
            self._bump(prefix)
        logger.debug("Invalidated %d cache entries under %s", count, prefix)
        return count

    def is_stale(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(tuple(key))
            return entry is None or entry.stale

    def fetch(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, loading it when missing or stale.

        A loaded value is only stored when ``key`` was not invalidated or
        written while the loader ran; the caller still receives it.
        """

        key = tuple(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.stale:
                return entry.value
            started_at = self._versions.get(key, 0)

        value = loader()

        with self._lock:
            if self._versions.get(key, 0) == started_at:
                version = self._bump(key)
                self._entries[key] = CacheEntry(value=value, version=version)
            else:
                logger.debug("Discarding superseded load for %s", key)
        return value

    def _bump(self, key: CacheKey) -> int:
        version = self._versions.get(key, 0) + 1
        self._versions[key] = version
        return version


__all__ = ["CacheEntry", "CacheKey", "CacheService", "QueryCache"]
