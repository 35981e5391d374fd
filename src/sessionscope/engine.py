"""Session resolution and tailing engine.

One refresh cycle:
    process lister -> DirectoryResolver -> CandidateScanner
    -> SessionSelector -> ContentCache + EntryParser -> TailTracker

Resolution (directory lookup, stats, selection) fans out across processes
with bounded concurrency. Reading entries and publishing the new Snapshot
happen together under the engine's publish lock, which is also what
file-change reads take, so a line is never delivered twice. Every cycle
gets a sequence number when it starts; a cycle that finishes after a newer
one has already published is discarded.

Between cycles the ChangeNotifier watches the resolved files and triggers
an incremental read of just the file that changed.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import replace

from sessionscope.cache import ContentCache
from sessionscope.config import EngineConfig
from sessionscope.errors import CacheLoadError, ProcessListerError
from sessionscope.logging_config import get_logger
from sessionscope.models import (
    ProcessDescriptor,
    ProcessSession,
    ResolvedSession,
    SessionEntry,
    Snapshot,
    TailResult,
)
from sessionscope.notifier import ChangeNotifier
from sessionscope.parser import EntryParser
from sessionscope.procs import ProcessLister
from sessionscope.resolver import DirectoryResolver
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector
from sessionscope.tail import TailOffsets, TailTracker

logger = get_logger(__name__)

UpdateCallback = Callable[[Snapshot], Awaitable[None] | None]


class SessionEngine:
    """Keeps a per-process view of resolved session files and entries.

    Components are built from the config unless passed in, which is how
    tests swap in fakes.
    """

    def __init__(
        self,
        lister: ProcessLister,
        config: EngineConfig | None = None,
        *,
        resolver: DirectoryResolver | None = None,
        scanner: CandidateScanner | None = None,
        selector: SessionSelector | None = None,
        cache: ContentCache | None = None,
        parser: EntryParser | None = None,
        on_update: UpdateCallback | None = None,
        watch: bool = True,
    ) -> None:
        self.lister = lister
        self.config = config or EngineConfig.from_env()
        cfg = self.config

        self.resolver = resolver or DirectoryResolver(
            projects_dir=cfg.projects_dir,
            fuzzy_threshold=cfg.fuzzy_threshold,
        )
        self.scanner = scanner or CandidateScanner(
            concurrency=cfg.stat_concurrency
        )
        self.selector = selector or SessionSelector(
            min_size=cfg.min_session_bytes,
            birth_tolerance=cfg.birth_tolerance,
            mtime_tolerance=cfg.mtime_tolerance,
        )
        self.cache = cache or ContentCache(
            max_entries=cfg.cache_max_entries, ttl=cfg.cache_ttl
        )
        self.parser = parser or EntryParser(
            max_content_length=cfg.max_content_length,
            max_entries=cfg.max_entries,
        )
        self.tail = TailTracker(self.cache, self.parser)
        self.offsets = TailOffsets()
        self.notifier: ChangeNotifier | None = None
        if watch:
            self.notifier = ChangeNotifier(
                self.on_file_change,
                debounce_ms=cfg.debounce_ms,
                stability_ms=cfg.stability_ms,
            )
        self.on_update = on_update
        self.last_error: str | None = None

        self._snapshot = Snapshot(cycle=0)
        self._next_cycle = 0
        self._publish_lock = asyncio.Lock()
        self._watch_lock = asyncio.Lock()
        self._resolve_semaphore = asyncio.Semaphore(
            max(1, cfg.session_concurrency)
        )
        self._loop_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._closed = False

    async def __aenter__(self) -> SessionEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.teardown()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def sessions(self) -> dict[int, ProcessSession]:
        return dict(self._snapshot.sessions)

    def get(self, pid: int) -> ProcessSession | None:
        return self._snapshot.sessions.get(pid)

    # -- resolution ---------------------------------------------------------

    async def resolve(self, proc: ProcessDescriptor) -> ResolvedSession:
        """Find the session file for one process ("" when there is none)."""
        if not proc.cwd:
            return ResolvedSession(pid=proc.pid, path="")

        directory = await self.resolver.resolve(proc.cwd)
        if directory is None:
            return ResolvedSession(pid=proc.pid, path="")

        files = await self.scanner.scan(directory)
        chosen, strategy = self.selector.select_with_strategy(
            files, proc.start_time
        )
        if chosen is None:
            return ResolvedSession(pid=proc.pid, path="")
        return ResolvedSession(
            pid=proc.pid, path=str(chosen.path), strategy=strategy
        )

    async def _resolve_guarded(
        self, proc: ProcessDescriptor
    ) -> ResolvedSession:
        async with self._resolve_semaphore:
            try:
                return await self.resolve(proc)
            except OSError as e:
                logger.warning(
                    "resolution failed for pid %d (%s): %s",
                    proc.pid,
                    proc.cwd,
                    e,
                )
                return ResolvedSession(pid=proc.pid, path="")

    # -- refresh cycle ------------------------------------------------------

    async def refresh(self) -> Snapshot:
        """Run one refresh cycle and return the latest published snapshot.

        If the process lister fails the previous snapshot stays in place
        and the error is kept in last_error.
        """
        if self._closed:
            return self._snapshot
        self._next_cycle += 1
        cycle = self._next_cycle

        try:
            procs = await self.lister.list_processes()
        except (ProcessListerError, OSError) as e:
            self.last_error = str(e)
            logger.warning("process listing failed (cycle %d): %s", cycle, e)
            return self._snapshot

        resolved = await asyncio.gather(
            *(self._resolve_guarded(p) for p in procs)
        )

        async with self._publish_lock:
            if self._closed:
                logger.debug("engine closed, dropping cycle %d", cycle)
                return self._snapshot
            if cycle <= self._snapshot.cycle:
                logger.debug(
                    "dropping stale cycle %d (published %d)",
                    cycle,
                    self._snapshot.cycle,
                )
                return self._snapshot

            loaded = await asyncio.gather(
                *(
                    self._load_entries(proc, res)
                    for proc, res in zip(procs, resolved)
                )
            )
            sessions = {s.pid: s for s, _ in loaded}
            new_snapshot = Snapshot(cycle=cycle, sessions=sessions)

            for session, total in loaded:
                if session.resolved_path:
                    await self.offsets.advance(session.resolved_path, total)
            dropped = self._snapshot.session_paths - new_snapshot.session_paths
            for path in dropped:
                await self.offsets.forget(path)

            self._snapshot = new_snapshot
            self.last_error = None

        logger.debug(
            "published cycle %d: %d process(es), %d session(s)",
            cycle,
            len(sessions),
            len(new_snapshot.session_paths),
        )
        if self.notifier is not None:
            async with self._watch_lock:
                if self._closed:
                    return new_snapshot
                await self.notifier.watch(self._snapshot.session_paths)
        await self._emit(new_snapshot)
        return new_snapshot

    async def _load_entries(
        self, proc: ProcessDescriptor, res: ResolvedSession
    ) -> tuple[ProcessSession, int]:
        """Build the session view for one process. Caller holds the lock."""
        if not res.found:
            return ProcessSession(descriptor=proc), 0

        previous = self._snapshot.sessions.get(proc.pid)
        offset = self.offsets.get(res.path)
        try:
            async with self._resolve_semaphore:
                if (
                    previous is not None
                    and previous.resolved_path == res.path
                    and offset is not None
                ):
                    result = await self.tail.read_new(res.path, offset)
                    entries = self._append(previous.entries, result.entries)
                else:
                    result = await self.tail.read_all(res.path)
                    entries = result.entries
        except CacheLoadError as e:
            logger.warning("cannot read session for pid %d: %s", proc.pid, e)
            return ProcessSession(descriptor=proc), 0
        except Exception:
            logger.exception("loading session failed for pid %d", proc.pid)
            return ProcessSession(descriptor=proc), 0

        session = ProcessSession(
            descriptor=proc,
            resolved_path=res.path,
            entries=entries,
            strategy=res.strategy,
        )
        return session, result.total_lines

    def _append(
        self, entries: list[SessionEntry], new: list[SessionEntry]
    ) -> list[SessionEntry]:
        combined = entries + new
        limit = self.config.max_entries
        if limit <= 0:
            return []
        return combined[-limit:]

    # -- incremental reads --------------------------------------------------

    async def on_file_change(self, path: str) -> None:
        """Append entries written to path since the last read."""
        async with self._publish_lock:
            if self._closed:
                return
            offset = self.offsets.get(path)
            if offset is None:
                return
            try:
                result: TailResult = await self.tail.read_new(path, offset)
            except CacheLoadError as e:
                logger.warning("incremental read failed: %s", e)
                return

            await self.offsets.advance(path, result.total_lines)
            if not result.entries:
                return

            sessions = {
                pid: (
                    replace(
                        s, entries=self._append(s.entries, result.entries)
                    )
                    if s.resolved_path == path
                    else s
                )
                for pid, s in self._snapshot.sessions.items()
            }
            self._snapshot = replace(self._snapshot, sessions=sessions)
            snapshot = self._snapshot

        logger.debug(
            "%d new entries in %s", len(result.entries), path.rsplit("/")[-1]
        )
        await self._emit(snapshot)

    async def _emit(self, snapshot: Snapshot) -> None:
        if self.on_update is None:
            return
        try:
            result = self.on_update(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("update callback failed")

    # -- lifecycle ----------------------------------------------------------

    async def start(self, interval: float | None = None) -> None:
        """Refresh now, then keep refreshing every interval seconds."""
        if self._loop_task is not None:
            logger.warning("engine already running")
            return
        if self._closed:
            logger.warning("engine already torn down")
            return
        self._stop_event.clear()
        await self.refresh()
        self._loop_task = asyncio.create_task(
            self._refresh_loop(interval or self.config.refresh_interval),
            name="session-refresh",
        )

    async def _refresh_loop(self, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=interval
                )
                break  # stop event was set
            except asyncio.TimeoutError:
                pass

            try:
                await self.refresh()
            except Exception as e:
                self.last_error = str(e)
                logger.exception("refresh loop error: %s", e)

    async def kill(self, pid: int, force: bool = False) -> bool:
        """Ask the lister to kill pid; refresh if it worked."""
        ok = await self.lister.kill(pid, force)
        if ok:
            await self.refresh()
        return ok

    async def teardown(self) -> None:
        """Stop the refresh loop and release the watcher and its timers."""
        self._closed = True
        self._stop_event.set()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self.notifier is not None:
            async with self._watch_lock:
                await self.notifier.close()
        self.cache.invalidate_all()
        logger.debug("engine torn down")
