"""TTL cache for raw SKILL.md content with ETag revalidation.

Entries go stale after ``stale_after`` seconds (serve, but revalidate with
If-None-Match) and expire after ``expire_after`` (treated as a miss). The
clock is injectable so tests control staleness without sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class CacheEntry:
    content: str
    etag: str | None
    cached_at: float


class ContentCache:
    def __init__(
        self,
        stale_after: float = 5 * 60,
        expire_after: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_after = stale_after
        self.expire_after = expire_after
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.cached_at > self.expire_after:
            del self._entries[key]
            return None
        return entry

    def is_stale(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.cached_at > self.stale_after

    def set(self, key: str, content: str, etag: str | None) -> CacheEntry:
        entry = CacheEntry(content=content, etag=etag, cached_at=self.clock())
        self._entries[key] = entry
        return entry

    def touch(self, key: str) -> None:
        """Mark an entry fresh again after a 304."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.cached_at = self.clock()

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
