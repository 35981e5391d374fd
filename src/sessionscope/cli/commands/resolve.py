"""Resolve command - show which session file a working directory maps to."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import tyro

from sessionscope import console
from sessionscope.cli._common import (
    enable_debug,
    load_config,
    parse_start_time,
)
from sessionscope.diagnostics import format_size, format_time_diff
from sessionscope.resolver import DirectoryResolver, slug_for
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector


@dataclass
class Resolve:
    """Resolve a working directory to its session directory and file."""

    cwd: tyro.conf.Positional[str] = field(
        metadata={"help": "Working directory of the claude process"},
    )
    start_time: str | None = field(
        default=None,
        metadata={"help": "Process start time (ISO 8601)"},
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
        """Execute the resolve command."""
        if self.debug:
            enable_debug()

        try:
            start = parse_start_time(self.start_time)
        except ValueError:
            console.error(f"invalid start time: {self.start_time}")
            return 1

        config = load_config(self.projects_dir)
        resolver = DirectoryResolver(
            projects_dir=config.projects_dir,
            fuzzy_threshold=config.fuzzy_threshold,
        )
        scanner = CandidateScanner(concurrency=config.stat_concurrency)
        selector = SessionSelector(
            min_size=config.min_session_bytes,
            birth_tolerance=config.birth_tolerance,
            mtime_tolerance=config.mtime_tolerance,
        )

        async def run_resolve():
            directory = await resolver.resolve(self.cwd)
            files = await scanner.scan(directory) if directory else []
            return directory, files

        directory, files = asyncio.run(run_resolve())

        console.header(f"Resolve {self.cwd}")
        console.key_value("slug", slug_for(self.cwd))
        if directory is None:
            console.error(f"no session directory under {config.projects_dir}")
            return 1
        console.key_value("directory", directory)

        if not files:
            console.warning("no session files")
            return 1

        console.subheader("\ncandidates")
        for f in files:
            line = f"{f.path.name}  {format_size(f.size)}"
            if start is not None:
                line += f"  born {format_time_diff(f.birth_time, start)}"
            if f.size < config.min_session_bytes:
                console.dim(f"  {line}  (ignored)")
            else:
                console.info(f"  {line}")

        chosen, strategy = selector.select_with_strategy(files, start)
        print()
        if chosen is None:
            console.error("no session selected")
            return 1
        console.success(f"{chosen.path} ({strategy})")
        return 0
