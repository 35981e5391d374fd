"""Incremental reads of growing session files.

Offsets are line counts, not byte positions: the content cache already
holds the whole file, so slicing lines is cheap and survives the cache
being refilled. Only newline-terminated lines are counted. A record that
is still being written is left for the next read instead of being
consumed half-finished.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from sessionscope.cache import ContentCache
from sessionscope.logging_config import get_logger
from sessionscope.models import TailResult
from sessionscope.parser import EntryParser

logger = get_logger(__name__)


def complete_lines(content: str) -> list[str]:
    """Split content into newline-terminated lines (terminators removed)."""
    lines = content.split("\n")
    # the last piece is either "" or an unfinished record
    return lines[:-1]


class TailTracker:
    """Reads entries past a caller-supplied line offset.

    Holds no offsets itself: read_new is a function of the cached content
    and the offset passed in, so repeating a call gives the same answer.
    """

    def __init__(self, cache: ContentCache, parser: EntryParser) -> None:
        self.cache = cache
        self.parser = parser

    async def read_new(self, path: Path | str, from_line: int) -> TailResult:
        """Parse lines at index >= from_line.

        Raises:
            CacheLoadError: the file could not be read.
        """
        if not path:
            return TailResult()

        lines = complete_lines(await self.cache.get(path))
        total = len(lines)
        start = max(0, from_line)
        if start >= total:
            return TailResult(entries=[], total_lines=total)

        entries = self.parser.parse(lines[start:])
        logger.debug(
            "read %d new line(s) from %s: %d entries",
            total - start,
            Path(path).name,
            len(entries),
        )
        return TailResult(entries=entries, total_lines=total)

    async def read_all(self, path: Path | str) -> TailResult:
        """Parse the whole file, keeping the newest entries only."""
        if not path:
            return TailResult()
        lines = complete_lines(await self.cache.get(path))
        return TailResult(
            entries=self.parser.parse_all(lines), total_lines=len(lines)
        )


class TailOffsets:
    """Per-path count of lines already delivered to the caller.

    Offsets only move forward. A path's offset is dropped when the process
    it belonged to switches to a different file.
    """

    def __init__(self) -> None:
        self._offsets: dict[str, int] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, path: object) -> bool:
        return path in self._offsets

    def __len__(self) -> int:
        return len(self._offsets)

    def get(self, path: str) -> int | None:
        return self._offsets.get(path)

    async def advance(self, path: str, total_lines: int) -> int:
        """Move the offset to total_lines unless it is already past it."""
        async with self._lock:
            current = self._offsets.get(path, 0)
            if total_lines > current or path not in self._offsets:
                self._offsets[path] = max(current, total_lines)
            return self._offsets[path]

    async def forget(self, path: str) -> None:
        async with self._lock:
            self._offsets.pop(path, None)

    async def clear(self) -> None:
        async with self._lock:
            self._offsets.clear()
