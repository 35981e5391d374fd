"""Debounced change notifications for the active session files.

Uses `watchfiles` (Rust notify) to watch the directories that hold the
session files. watchfiles already groups raw events until the filesystem
has been quiet for `stability_ms`. On top of that each path gets its own
debounce timer: a new event for a path cancels and restarts that path's
timer, so a burst of appends produces one callback.

The watch set changes whenever the engine resolves a different set of
session files. Rebuilding it stops the old watcher and cancels every
pending timer before the new watcher starts.
"""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path

from watchfiles import Change, awatch

from sessionscope.config import DEFAULT_DEBOUNCE_MS, DEFAULT_STABILITY_MS
from sessionscope.logging_config import get_logger

logger = get_logger(__name__)

ChangeCallback = Callable[[str], Awaitable[None] | None]

# upper bound on how long watchfiles may keep grouping a steady stream
DEFAULT_MAX_BATCH_MS = 1600


class ChangeNotifier:
    """Watches a dynamic set of files and calls back once per burst."""

    def __init__(
        self,
        callback: ChangeCallback,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        stability_ms: int = DEFAULT_STABILITY_MS,
        max_batch_ms: int = DEFAULT_MAX_BATCH_MS,
        force_polling: bool | None = None,
    ) -> None:
        self.callback = callback
        self.debounce_seconds = debounce_ms / 1000
        self.stability_ms = stability_ms
        self.max_batch_ms = max(max_batch_ms, stability_ms)
        self.force_polling = force_polling

        self._paths: frozenset[str] = frozenset()
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._callbacks: set[asyncio.Task] = set()
        self._watch_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._closed = False

    @property
    def watched_paths(self) -> frozenset[str]:
        return self._paths

    @property
    def pending(self) -> int:
        """Number of paths with a debounce timer still armed."""
        return len(self._timers)

    @property
    def is_running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def watch(self, paths: Iterable[str]) -> None:
        """Replace the watch set. The same set again is a no-op.

        After close() the notifier stays idle.
        """
        if self._closed:
            logger.debug("notifier closed, ignoring watch request")
            return
        new_paths = frozenset(os.path.abspath(p) for p in paths if p)
        if new_paths == self._paths and (self.is_running or not new_paths):
            return

        await self._stop_watcher()
        self.drain()
        self._paths = new_paths
        if not new_paths:
            logger.debug("watch set empty, watcher idle")
            return

        self._stop_event = asyncio.Event()
        self._watch_task = asyncio.create_task(
            self._watch_loop(new_paths, self._stop_event),
            name="session-watcher",
        )
        logger.info("watching %d session file(s)", len(new_paths))

    def notify(self, path: str) -> None:
        """Record a change for path, restarting its debounce timer."""
        if self._closed:
            return
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        loop = asyncio.get_running_loop()
        self._timers[path] = loop.call_later(
            self.debounce_seconds, self._fire, path
        )

    def drain(self) -> None:
        """Cancel every pending debounce timer without firing it."""
        for handle in self._timers.values():
            handle.cancel()
        if self._timers:
            logger.debug("drained %d pending timer(s)", len(self._timers))
        self._timers.clear()

    async def close(self) -> None:
        """Stop watching, drop pending timers, wait for running callbacks."""
        self._closed = True
        await self._stop_watcher()
        self.drain()
        self._paths = frozenset()
        if self._callbacks:
            await asyncio.gather(*self._callbacks, return_exceptions=True)
        logger.debug("change notifier closed")

    def _fire(self, path: str) -> None:
        self._timers.pop(path, None)
        try:
            result = self.callback(path)
        except Exception:
            logger.exception("change callback failed for %s", path)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callbacks.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        self._callbacks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("change callback raised: %s", exc)

    async def _stop_watcher(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
        self._watch_task = None
        self._stop_event = None

    async def _watch_loop(
        self, paths: frozenset[str], stop_event: asyncio.Event
    ) -> None:
        # some platforms report resolved paths (/private/var vs /var)
        by_real = {os.path.realpath(p): p for p in paths}
        by_real.update({p: p for p in paths})
        dirs = sorted({str(Path(p).parent) for p in paths})
        dirs = [d for d in dirs if os.path.isdir(d)]
        if not dirs:
            logger.warning(
                "no watchable directories for %d path(s)", len(paths)
            )
            return

        def accept(change: Change, path: str) -> bool:
            if change == Change.deleted:
                return False
            return path in by_real or os.path.realpath(path) in by_real

        try:
            async for changes in awatch(
                *dirs,
                watch_filter=accept,
                debounce=self.max_batch_ms,
                step=self.stability_ms,
                stop_event=stop_event,
                recursive=False,
                force_polling=self.force_polling,
            ):
                for _, changed in changes:
                    original = by_real.get(changed) or by_real.get(
                        os.path.realpath(changed)
                    )
                    if original is not None:
                        self.notify(original)
        except asyncio.CancelledError:
            logger.debug("watch loop cancelled")
            raise
        except Exception as e:
            logger.error("watch loop error: %s", e)
