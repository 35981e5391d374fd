"""List candidate session files in a project directory."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from sessionscope.config import DEFAULT_STAT_CONCURRENCY, SESSION_SUFFIX
from sessionscope.logging_config import get_logger
from sessionscope.models import SessionLogFile

logger = get_logger(__name__)


def birth_time_of(st: os.stat_result) -> float:
    """Creation time where the platform reports it, else st_ctime.

    macOS and the BSDs expose st_birthtime. Linux does not through
    os.stat, and st_ctime (inode change) is the closest stand-in for an
    append-only file that is never chmod'ed.
    """
    birth = getattr(st, "st_birthtime", None)
    if birth is not None:
        return float(birth)
    return st.st_ctime


class CandidateScanner:
    """Stats every session file in a directory with bounded concurrency."""

    def __init__(
        self,
        concurrency: int = DEFAULT_STAT_CONCURRENCY,
        suffix: str = SESSION_SUFFIX,
    ) -> None:
        self.suffix = suffix
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def scan(self, directory: Path) -> list[SessionLogFile]:
        """Return metadata for every session file in directory.

        An unreadable directory yields an empty list. Files deleted between
        listing and stat are skipped.
        """
        try:
            names = await asyncio.to_thread(os.listdir, directory)
        except OSError as e:
            logger.debug("cannot list %s: %s", directory, e)
            return []

        paths = [
            directory / name
            for name in sorted(names)
            if name.endswith(self.suffix)
        ]
        if not paths:
            return []

        results = await asyncio.gather(*(self._stat(p) for p in paths))
        files = [f for f in results if f is not None]
        logger.debug(
            "scanned %s: %d session file(s)", directory.name, len(files)
        )
        return files

    async def _stat(self, path: Path) -> SessionLogFile | None:
        async with self._semaphore:
            try:
                st = await asyncio.to_thread(os.stat, path)
            except OSError as e:
                logger.debug("stat failed for %s: %s", path, e)
                return None

        return SessionLogFile(
            path=path,
            birth_time=birth_time_of(st),
            mtime=st.st_mtime,
            size=st.st_size,
        )
