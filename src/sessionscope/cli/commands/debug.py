"""Debug command - print the session-matching report for running CLIs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from sessionscope import console
from sessionscope.cli._common import enable_debug, load_config, make_tail
from sessionscope.diagnostics import diagnose
from sessionscope.errors import ProcessListerError
from sessionscope.procs import PsProcessLister
from sessionscope.resolver import DirectoryResolver
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector


@dataclass
class Debug:
    """Explain how each running claude process was matched to a session."""

    projects_dir: Path | None = field(
        default=None,
        metadata={"help": "Override the Claude projects directory"},
    )
    verbose: bool = field(
        default=False,
        metadata={"help": "Enable debug logging"},
    )

    def run(self) -> int:
        """Execute the debug command."""
        if self.verbose:
            enable_debug()

        config = load_config(self.projects_dir)

        async def run_debug():
            procs = await PsProcessLister().list_processes()
            return await diagnose(
                procs,
                resolver=DirectoryResolver(
                    projects_dir=config.projects_dir,
                    fuzzy_threshold=config.fuzzy_threshold,
                ),
                scanner=CandidateScanner(
                    concurrency=config.stat_concurrency
                ),
                selector=SessionSelector(
                    min_size=config.min_session_bytes,
                    birth_tolerance=config.birth_tolerance,
                    mtime_tolerance=config.mtime_tolerance,
                ),
                tail=make_tail(config),
            )

        try:
            with console.status("matching sessions..."):
                report = asyncio.run(run_debug())
        except ProcessListerError as e:
            console.error(str(e))
            return 1

        print(report.render())
        return 0
