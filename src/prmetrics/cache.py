"""In-memory key/value cache with per-entry expiry.

A single ``CacheStore`` is created per process and passed to the components
that need it. Expired entries are only removed when they are read; there is no
background sweeper. Concurrent misses on the same key are not deduplicated, so
two callers may both refetch.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Represents one stored value and its absolute expiry on the cache clock."""

    key: str
    value: Any
    expires_at: float


class CacheStore:
    """Thread-safe TTL cache keyed by string."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``, replacing any previous entry."""
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)
        with self._lock:
            self._entries[key] = entry
        logger.debug("Cache set", extra={"cache_key": key, "ttl_seconds": ttl_seconds})

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or ``None`` when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss", extra={"cache_key": key})
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired", extra={"cache_key": key})
                return None

        logger.debug("Cache hit", extra={"cache_key": key})
        return entry.value

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
