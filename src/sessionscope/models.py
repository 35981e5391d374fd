"""Data model shared across the resolution and tailing pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ProcessDescriptor:
    """A process as reported by the process lister."""

    pid: int
    cwd: str
    start_time: datetime | None
    tty: str = ""
    cpu: float = 0.0
    memory: float = 0.0
    elapsed: str = ""


@dataclass(frozen=True)
class SessionLogFile:
    """Stat snapshot of one candidate session file.

    Times are POSIX timestamps (seconds).
    """

    path: Path
    birth_time: float
    mtime: float
    size: int


@dataclass(frozen=True)
class ResolvedSession:
    """Which session file a process was matched to this cycle."""

    pid: int
    path: str  # "" when nothing was found
    strategy: str | None = None

    @property
    def found(self) -> bool:
        return bool(self.path)


@dataclass(frozen=True)
class SessionEntry:
    """A user or assistant message extracted from a session file."""

    role: Role
    content: str
    timestamp: str = ""


@dataclass(frozen=True)
class TailResult:
    """New entries since an offset plus the file's current line count."""

    entries: list[SessionEntry] = field(default_factory=list)
    total_lines: int = 0


@dataclass
class ProcessSession:
    """Per-process view handed to the caller."""

    descriptor: ProcessDescriptor
    resolved_path: str = ""
    entries: list[SessionEntry] = field(default_factory=list)
    strategy: str | None = None

    @property
    def pid(self) -> int:
        return self.descriptor.pid


@dataclass(frozen=True)
class Snapshot:
    """Result of one refresh cycle, published as a unit."""

    cycle: int
    sessions: Mapping[int, ProcessSession] = field(default_factory=dict)

    @property
    def session_paths(self) -> set[str]:
        return {
            s.resolved_path
            for s in self.sessions.values()
            if s.resolved_path
        }
