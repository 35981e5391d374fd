"""Watch command - follow every running claude session live."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from sessionscope import console
from sessionscope.cli._common import enable_debug, load_config
from sessionscope.engine import SessionEngine
from sessionscope.models import SessionEntry, Snapshot
from sessionscope.procs import PsProcessLister


def unseen_entries(
    previous: list[SessionEntry], current: list[SessionEntry]
) -> list[SessionEntry]:
    """Entries in current that come after the last one already shown."""
    if not previous:
        return current
    last = previous[-1]
    for i in range(len(current) - 1, -1, -1):
        if current[i] is last:
            return current[i + 1 :]
    return current


@dataclass
class Watch:
    """Follow running claude sessions, printing entries as they arrive."""

    interval: float | None = field(
        default=None,
        metadata={"help": "Seconds between process refreshes"},
    )
    pid: int | None = field(
        default=None,
        metadata={"help": "Only show this process"},
    )
    lines: int = field(
        default=5,
        metadata={"help": "Entries of backlog to show per session"},
    )
    projects_dir: Path | None = field(
        default=None,
        metadata={"help": "Override the Claude projects directory"},
    )
    debug: bool = field(
        default=False,
        metadata={"help": "Enable debug logging"},
    )

    def run(self) -> int:
        """Execute the watch command."""
        if self.debug:
            enable_debug()

        config = load_config(self.projects_dir)
        shown: dict[int, tuple[str, list[SessionEntry]]] = {}

        def on_update(snapshot: Snapshot) -> None:
            for pid, session in sorted(snapshot.sessions.items()):
                if self.pid is not None and pid != self.pid:
                    continue
                path, previous = shown.get(pid, ("", []))
                if session.resolved_path != path:
                    name = Path(session.resolved_path).name or "no session"
                    console.subheader(
                        f"\n[{pid}] {session.descriptor.cwd} -> {name}"
                    )
                    new = session.entries[-self.lines :] if self.lines else []
                else:
                    new = unseen_entries(previous, session.entries)
                for entry in new:
                    console.entry(
                        entry.role, f"[{pid}] {entry.content}", entry.timestamp
                    )
                shown[pid] = (session.resolved_path, session.entries)

            for pid in set(shown) - set(snapshot.sessions):
                console.dim(f"[{pid}] exited")
                del shown[pid]

        async def run_watch() -> None:
            engine = SessionEngine(
                PsProcessLister(), config, on_update=on_update
            )
            async with engine:
                await engine.start(self.interval)
                if engine.last_error:
                    console.warning(engine.last_error)
                await asyncio.Event().wait()

        console.dim("watching claude sessions (ctrl-c to stop)")
        try:
            asyncio.run(run_watch())
        except KeyboardInterrupt:
            console.dim("stopped")
        return 0
