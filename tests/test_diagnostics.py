"""Tests for the session-matching report."""

import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from sessionscope.cache import ContentCache
from sessionscope.diagnostics import (
    diagnose,
    format_size,
    format_time_diff,
)
from sessionscope.models import ProcessDescriptor
from sessionscope.parser import EntryParser
from sessionscope.resolver import DirectoryResolver
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector
from sessionscope.tail import TailTracker


class TestFormatting:
    @pytest.mark.parametrize(
        ("size", "text"),
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.0 KB"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
        ],
    )
    def test_format_size(self, size, text):
        assert format_size(size) == text

    def test_time_diff_seconds(self):
        start = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        ts = start.timestamp()
        assert format_time_diff(ts + 42, start) == "42s after start"
        assert format_time_diff(ts - 5, start) == "5s before start"

    def test_time_diff_minutes(self):
        start = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        ts = start.timestamp()
        assert format_time_diff(ts + 90, start) == "1.5m after start"
        assert format_time_diff(ts - 600, start) == "10.0m before start"

    def test_time_diff_unknown_start(self):
        assert format_time_diff(0.0, None) == "start time unknown"


def line(text):
    return json.dumps({"type": "user", "message": {"content": text}})


@pytest.mark.asyncio
class TestDiagnose:
    @pytest.fixture
    def projects(self, tmp_path):
        root = tmp_path / "projects"
        session_dir = root / "-home-dev-app"
        session_dir.mkdir(parents=True)

        big = session_dir / "big.jsonl"
        big.write_text(
            "".join(line(f"m{i} " + "x" * 60) + "\n" for i in range(20))
        )
        small = session_dir / "small.jsonl"
        small.write_text(line("stub") + "\n")
        old = (datetime.now() - timedelta(hours=2)).timestamp()
        os.utime(big, (old, old))
        return root

    async def run(self, projects, procs):
        return await diagnose(
            procs,
            resolver=DirectoryResolver(projects_dir=projects),
            scanner=CandidateScanner(),
            selector=SessionSelector(),
            tail=TailTracker(ContentCache(), EntryParser()),
        )

    async def test_report_for_matched_process(self, projects):
        # long-running process: neither time window matches
        start = datetime.now().astimezone() - timedelta(days=1)
        report = await self.run(
            projects,
            [ProcessDescriptor(pid=7, cwd="/home/dev/app", start_time=start)],
        )

        (proc,) = report.processes
        assert proc.slug == "-home-dev-app"
        assert proc.session_dir == projects / "-home-dev-app"
        names = {c.file.path.name: c.ignored for c in proc.candidates}
        assert names == {"big.jsonl": False, "small.jsonl": True}
        assert proc.chosen.path.name == "big.jsonl"
        assert proc.strategy == "latest"
        assert proc.entry_count == 20
        assert report.matched == 1

        text = report.render()
        assert "process #1 (pid 7)" in text
        assert "(< 1.0 KB, ignored)" in text
        assert "strategy: latest" in text
        assert "entries:  20" in text
        assert "total: 1 process(es), 1 matched" in text

    async def test_unresolved_and_unknown_cwd(self, projects):
        report = await self.run(
            projects,
            [
                ProcessDescriptor(pid=1, cwd="/nowhere/zzz", start_time=None),
                ProcessDescriptor(pid=2, cwd="", start_time=None),
            ],
        )

        missing, unknown = report.processes
        assert missing.session_dir is None
        assert missing.chosen is None
        assert unknown.error == "working directory unknown"
        assert report.matched == 0

        text = report.render()
        assert "session dir: (not found)" in text
        assert "error: working directory unknown" in text
        assert "total: 2 process(es), 0 matched" in text

    async def test_no_processes(self, projects):
        report = await self.run(projects, [])
        assert "no running claude processes found" in report.render()
