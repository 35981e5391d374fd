"""Pick the session file that belongs to a specific process.

A project directory usually holds many transcripts: old sessions, resumed
sessions, and sometimes several live ones. Strategies are tried in order:

1. birth_time - the file was created within a few minutes of the process
   starting (a new session). Latest-modified wins among matches.
2. mtime - the file was touched within a wider window around the start
   (a resumed session reopens an old file). Closest mtime wins.
3. latest - most recently modified file. Always yields something when
   there is at least one candidate.

Files smaller than the size threshold (empty or summary-only transcripts)
are invisible to all strategies unless nothing meets the threshold, in
which case the latest strategy falls back to every file.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sessionscope.config import (
    DEFAULT_BIRTH_TOLERANCE,
    DEFAULT_MIN_SESSION_BYTES,
    DEFAULT_MTIME_TOLERANCE,
)
from sessionscope.logging_config import get_logger
from sessionscope.models import SessionLogFile

logger = get_logger(__name__)


@dataclass(frozen=True)
class SelectionContext:
    start_time: float | None
    min_size: int = DEFAULT_MIN_SESSION_BYTES
    birth_tolerance: float = DEFAULT_BIRTH_TOLERANCE
    mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE

    def eligible(
        self, files: Sequence[SessionLogFile]
    ) -> list[SessionLogFile]:
        return [f for f in files if f.size >= self.min_size]


Strategy = Callable[
    [Sequence[SessionLogFile], SelectionContext], SessionLogFile | None
]


def match_birth_time(
    files: Sequence[SessionLogFile], ctx: SelectionContext
) -> SessionLogFile | None:
    if ctx.start_time is None:
        return None
    start = ctx.start_time
    matched = [
        f
        for f in ctx.eligible(files)
        if abs(f.birth_time - start) < ctx.birth_tolerance
    ]
    if not matched:
        return None
    return max(matched, key=lambda f: f.mtime)


def match_mtime(
    files: Sequence[SessionLogFile], ctx: SelectionContext
) -> SessionLogFile | None:
    if ctx.start_time is None:
        return None
    start = ctx.start_time
    matched = [
        f
        for f in ctx.eligible(files)
        if abs(f.mtime - start) < ctx.mtime_tolerance
    ]
    if not matched:
        return None
    return min(matched, key=lambda f: abs(f.mtime - start))


def latest_modified(
    files: Sequence[SessionLogFile], ctx: SelectionContext
) -> SessionLogFile | None:
    pool = ctx.eligible(files) or list(files)
    if not pool:
        return None
    return max(pool, key=lambda f: f.mtime)


DEFAULT_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("birth_time", match_birth_time),
    ("mtime", match_mtime),
    ("latest", latest_modified),
)


class SessionSelector:
    """Runs the ordered strategy list; first non-None result wins."""

    def __init__(
        self,
        min_size: int = DEFAULT_MIN_SESSION_BYTES,
        birth_tolerance: float = DEFAULT_BIRTH_TOLERANCE,
        mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE,
        strategies: Sequence[tuple[str, Strategy]] = DEFAULT_STRATEGIES,
    ) -> None:
        self.min_size = min_size
        self.birth_tolerance = birth_tolerance
        self.mtime_tolerance = mtime_tolerance
        self.strategies = tuple(strategies)

    def context(self, start_time: datetime | None) -> SelectionContext:
        return SelectionContext(
            start_time=start_time.timestamp() if start_time else None,
            min_size=self.min_size,
            birth_tolerance=self.birth_tolerance,
            mtime_tolerance=self.mtime_tolerance,
        )

    def select_with_strategy(
        self,
        files: Sequence[SessionLogFile],
        start_time: datetime | None,
    ) -> tuple[SessionLogFile | None, str | None]:
        """Return the chosen file and the name of the strategy that chose it."""
        if not files:
            return None, None

        ctx = self.context(start_time)
        for name, strategy in self.strategies:
            chosen = strategy(files, ctx)
            if chosen is not None:
                logger.debug(
                    "selected %s by %s (%d candidates)",
                    chosen.path.name,
                    name,
                    len(files),
                )
                return chosen, name
        return None, None

    def select(
        self,
        files: Sequence[SessionLogFile],
        start_time: datetime | None,
    ) -> SessionLogFile | None:
        chosen, _ = self.select_with_strategy(files, start_time)
        return chosen
