"""Tests for incremental session file reads."""

import json
import os

import pytest

from sessionscope.cache import ContentCache
from sessionscope.errors import CacheLoadError
from sessionscope.parser import EntryParser
from sessionscope.tail import TailOffsets, TailTracker, complete_lines


def record(text, role="user"):
    if role == "user":
        content = text
    else:
        content = [{"type": "text", "text": text}]
    return json.dumps({"type": role, "message": {"content": content}})


def append(path, *lines, mtime=None):
    with path.open("a") as f:
        for line in lines:
            f.write(line + "\n")
    if mtime is not None:
        os.utime(path, (mtime, mtime))


class TestCompleteLines:
    def test_trailing_newline(self):
        assert complete_lines("a\nb\n") == ["a", "b"]

    def test_unfinished_last_line_dropped(self):
        assert complete_lines('a\n{"type": "us') == ["a"]

    def test_empty(self):
        assert complete_lines("") == []

    def test_blank_lines_counted(self):
        assert complete_lines("a\n\nb\n") == ["a", "", "b"]


@pytest.mark.asyncio
class TestTailTracker:
    @pytest.fixture
    def tracker(self):
        return TailTracker(ContentCache(), EntryParser())

    @pytest.fixture
    def session(self, tmp_path):
        path = tmp_path / "s.jsonl"
        path.write_text("")
        append(
            path,
            record("hi"),
            record("hello", role="assistant"),
            mtime=1_700_000_000,
        )
        return path

    async def test_read_all(self, tracker, session):
        result = await tracker.read_all(session)
        assert [e.content for e in result.entries] == ["hi", "hello"]
        assert result.total_lines == 2

    async def test_read_new_from_offset(self, tracker, session):
        append(session, record("more"), mtime=1_700_000_010)
        result = await tracker.read_new(session, 2)
        assert [e.content for e in result.entries] == ["more"]
        assert result.total_lines == 3

    async def test_read_new_idempotent(self, tracker, session):
        first = await tracker.read_new(session, 1)
        second = await tracker.read_new(session, 1)
        assert first == second

    async def test_read_at_end_is_empty(self, tracker, session):
        result = await tracker.read_new(session, 2)
        assert result.entries == []
        assert result.total_lines == 2

    async def test_offset_past_end(self, tracker, session):
        result = await tracker.read_new(session, 50)
        assert result.entries == []
        assert result.total_lines == 2

    async def test_negative_offset_reads_everything(self, tracker, session):
        result = await tracker.read_new(session, -5)
        assert len(result.entries) == 2

    async def test_partial_line_left_for_later(self, tracker, session):
        with session.open("a") as f:
            f.write('{"type": "user", "message": {"con')
        os.utime(session, (1_700_000_020, 1_700_000_020))

        result = await tracker.read_new(session, 2)
        assert result.entries == []
        assert result.total_lines == 2

        with session.open("a") as f:
            f.write('tent": "finished"}}\n')
        os.utime(session, (1_700_000_030, 1_700_000_030))

        result = await tracker.read_new(session, 2)
        assert [e.content for e in result.entries] == ["finished"]
        assert result.total_lines == 3

    async def test_empty_path(self, tracker):
        assert (await tracker.read_new("", 0)).total_lines == 0
        assert (await tracker.read_all("")).entries == []

    async def test_missing_file_raises(self, tracker, tmp_path):
        with pytest.raises(CacheLoadError):
            await tracker.read_new(tmp_path / "gone.jsonl", 0)


@pytest.mark.asyncio
class TestTailOffsets:
    async def test_advance_and_get(self):
        offsets = TailOffsets()
        assert offsets.get("/a") is None
        assert await offsets.advance("/a", 5) == 5
        assert offsets.get("/a") == 5
        assert "/a" in offsets
        assert len(offsets) == 1

    async def test_never_moves_backwards(self):
        offsets = TailOffsets()
        await offsets.advance("/a", 10)
        assert await offsets.advance("/a", 3) == 10
        assert offsets.get("/a") == 10

    async def test_advance_to_zero_registers_path(self):
        offsets = TailOffsets()
        await offsets.advance("/empty", 0)
        assert offsets.get("/empty") == 0

    async def test_forget_and_clear(self):
        offsets = TailOffsets()
        await offsets.advance("/a", 1)
        await offsets.advance("/b", 2)
        await offsets.forget("/a")
        assert "/a" not in offsets
        await offsets.clear()
        assert len(offsets) == 0
