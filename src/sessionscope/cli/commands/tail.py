"""Tail command - print the latest entries of one session file."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import tyro

from sessionscope import console
from sessionscope.cli._common import enable_debug, load_config, make_tail
from sessionscope.errors import CacheLoadError


@dataclass
class Tail:
    """Print the last parsed user/assistant entries of a session file."""

    path: tyro.conf.Positional[Path] = field(
        metadata={"help": "Session .jsonl file"},
    )
    lines: int = field(
        default=20,
        metadata={"help": "Number of entries to show"},
    )
    debug: bool = field(
        default=False,
        metadata={"help": "Enable debug logging"},
    )

    def run(self) -> int:
        """Execute the tail command."""
        if self.debug:
            enable_debug()

        if self.lines <= 0:
            console.error("--lines must be positive")
            return 1

        tail = make_tail(load_config(), max_entries=self.lines)
        try:
            result = asyncio.run(tail.read_all(self.path))
        except CacheLoadError as e:
            console.error(str(e))
            return 1

        if not result.entries:
            console.dim(f"no entries ({result.total_lines} lines)")
            return 0

        for entry in result.entries:
            console.entry(entry.role, entry.content, entry.timestamp)
        console.dim(
            f"\n{len(result.entries)} entries from {result.total_lines} lines"
        )
        return 0
