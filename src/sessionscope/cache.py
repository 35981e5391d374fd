"""Whole-file content cache keyed by path.

Session files can be several megabytes and are re-read on every refresh
tick, so content is cached and only reloaded when the file's mtime moves.
Entries also expire after a TTL, and the table is bounded with LRU
eviction.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from sessionscope.config import DEFAULT_CACHE_SIZE, DEFAULT_CACHE_TTL
from sessionscope.errors import CacheLoadError
from sessionscope.logging_config import get_logger

logger = get_logger(__name__)

Loader = Callable[[Path], str]


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


@dataclass
class CacheEntry:
    data: str
    mtime: float
    captured_at: float


@dataclass
class CacheStats:
    count: int = 0
    max_entries: int = 0
    hits: int = 0
    misses: int = 0
    loads: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ContentCache:
    """mtime-validated LRU + TTL cache of file contents.

    The loader and clock are injectable so tests can count loads and move
    time forward without sleeping.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_SIZE,
        ttl: float = DEFAULT_CACHE_TTL,
        loader: Loader = read_text,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_entries = max_entries
        self.ttl = ttl
        self._loader = loader
        self._clock = clock
        self._entries: OrderedDict[Path, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._loads = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    @property
    def stats(self) -> CacheStats:
        return CacheStats(
            count=len(self._entries),
            max_entries=self.max_entries,
            hits=self._hits,
            misses=self._misses,
            loads=self._loads,
            evictions=self._evictions,
        )

    async def get(self, path: Path | str) -> str:
        """Return the file's content, reloading it if it changed.

        Raises:
            CacheLoadError: the file could not be stat'ed or read.
        """
        path = Path(path)
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError as e:
            raise CacheLoadError(path, str(e)) from e
        mtime = st.st_mtime

        async with self._lock:
            entry = self._entries.get(path)
            now = self._clock()
            if (
                entry is not None
                and entry.mtime == mtime
                and now - entry.captured_at < self.ttl
            ):
                self._entries.move_to_end(path)
                self._hits += 1
                return entry.data
            self._misses += 1

        try:
            data = await asyncio.to_thread(self._loader, path)
        except OSError as e:
            raise CacheLoadError(path, str(e)) from e

        async with self._lock:
            self._loads += 1
            self._entries[path] = CacheEntry(
                data=data, mtime=mtime, captured_at=self._clock()
            )
            self._entries.move_to_end(path)
            self._evict()

        logger.debug(
            "loaded %s (%d chars, %d cached)",
            path.name,
            len(data),
            len(self._entries),
        )
        return data

    def invalidate(self, path: Path | str) -> None:
        self._entries.pop(Path(path), None)

    def invalidate_all(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.captured_at >= self.ttl
        ]
        for key in expired:
            del self._entries[key]
        self._evictions += len(expired)

        while len(self._entries) > self.max_entries:
            key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("evicted %s (lru)", key.name)
