"""Session-matching report: why each process got (or missed) its session.

Walks the same steps as the engine for every process and records what it
saw along the way, including the candidate files that were ignored.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from sessionscope.errors import CacheLoadError
from sessionscope.logging_config import get_logger
from sessionscope.models import ProcessDescriptor, SessionLogFile
from sessionscope.resolver import DirectoryResolver, slug_for
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector
from sessionscope.tail import TailTracker

logger = get_logger(__name__)


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_time_diff(when: float, reference: datetime | None) -> str:
    """Describe `when` relative to process start, e.g. "42s after start"."""
    if reference is None:
        return "start time unknown"
    diff = when - reference.timestamp()
    direction = "after" if diff >= 0 else "before"
    secs = abs(diff)
    if secs < 60:
        return f"{secs:.0f}s {direction} start"
    return f"{secs / 60:.1f}m {direction} start"


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(
        timespec="seconds"
    )


@dataclass
class CandidateReport:
    file: SessionLogFile
    ignored: bool
    birth_offset: str
    mtime_offset: str


@dataclass
class ProcessReport:
    descriptor: ProcessDescriptor
    slug: str
    session_dir: Path | None
    candidates: list[CandidateReport] = field(default_factory=list)
    strategy: str | None = None
    chosen: SessionLogFile | None = None
    entry_count: int | None = None
    error: str | None = None

    @property
    def matched(self) -> bool:
        return self.chosen is not None and self.entry_count is not None


@dataclass
class DiagnosticsReport:
    processes: list[ProcessReport] = field(default_factory=list)
    min_size: int = 1024

    @property
    def matched(self) -> int:
        return sum(1 for p in self.processes if p.matched)

    def render(self) -> str:
        """Plain-text rendering, one block per process."""
        out = ["=== session matching ===", ""]
        if not self.processes:
            out.append("no running claude processes found")
            return "\n".join(out)

        for i, proc in enumerate(self.processes, 1):
            d = proc.descriptor
            start = d.start_time.isoformat() if d.start_time else "unknown"
            out.append(f"process #{i} (pid {d.pid})")
            out.append(f"  cwd:         {d.cwd or '(unknown)'}")
            out.append(f"  started:     {start}")
            out.append(f"  slug:        {proc.slug}")
            out.append(f"  session dir: {proc.session_dir or '(not found)'}")
            out.append("")

            if proc.error:
                out.append(f"  error: {proc.error}")
            elif not proc.candidates:
                out.append("  no session files")
            else:
                out.append("  candidates:")
                for c in proc.candidates:
                    mark = "x" if c.ignored else "+"
                    out.append(f"    {mark} {c.file.path.name}")
                    out.append(f"      size:     {format_size(c.file.size)}")
                    if c.ignored:
                        limit = format_size(self.min_size)
                        out.append(f"      (< {limit}, ignored)")
                    out.append(
                        f"      created:  {_iso(c.file.birth_time)}"
                        f" ({c.birth_offset})"
                    )
                    out.append(
                        f"      modified: {_iso(c.file.mtime)}"
                        f" ({c.mtime_offset})"
                    )
                out.append("")
                out.append("  result:")
                out.append(f"    strategy: {proc.strategy or 'none'}")
                chosen = proc.chosen.path.name if proc.chosen else "none"
                out.append(f"    chosen:   {chosen}")
                if proc.chosen is not None:
                    count = (
                        "read failed"
                        if proc.entry_count is None
                        else str(proc.entry_count)
                    )
                    out.append(f"    entries:  {count}")
            out.append("")
            out.append("---")
            out.append("")

        out.append(
            f"total: {len(self.processes)} process(es),"
            f" {self.matched} matched"
        )
        return "\n".join(out)


async def diagnose(
    processes: Sequence[ProcessDescriptor],
    resolver: DirectoryResolver,
    scanner: CandidateScanner,
    selector: SessionSelector,
    tail: TailTracker,
) -> DiagnosticsReport:
    """Build a report for each process, in the order given."""
    report = DiagnosticsReport(min_size=selector.min_size)
    min_size = selector.min_size
    for proc in processes:
        entry = ProcessReport(
            descriptor=proc,
            slug=slug_for(proc.cwd) if proc.cwd else "",
            session_dir=None,
        )
        report.processes.append(entry)
        if not proc.cwd:
            entry.error = "working directory unknown"
            continue

        entry.session_dir = await resolver.resolve(proc.cwd)
        if entry.session_dir is None:
            continue

        files = await scanner.scan(entry.session_dir)
        entry.candidates = [
            CandidateReport(
                file=f,
                ignored=f.size < min_size,
                birth_offset=format_time_diff(f.birth_time, proc.start_time),
                mtime_offset=format_time_diff(f.mtime, proc.start_time),
            )
            for f in files
        ]
        entry.chosen, entry.strategy = selector.select_with_strategy(
            files, proc.start_time
        )
        if entry.chosen is None:
            continue
        try:
            result = await tail.read_all(entry.chosen.path)
        except CacheLoadError as e:
            logger.warning("diagnostics read failed: %s", e)
            continue
        entry.entry_count = len(result.entries)

    return report
