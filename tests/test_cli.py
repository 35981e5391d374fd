"""Tests for CLI commands."""

import json
import sys

import pytest

from sessionscope.cli import main
from sessionscope.cli._common import parse_start_time
from sessionscope.cli.commands.resolve import Resolve
from sessionscope.cli.commands.tail import Tail
from sessionscope.cli.commands.watch import unseen_entries
from sessionscope.models import SessionEntry


def write_session(path, *texts):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        for text in texts:
            record = {"type": "user", "message": {"content": text}}
            f.write(json.dumps(record) + "\n")
    return path


@pytest.fixture
def projects(tmp_path):
    root = tmp_path / "projects"
    write_session(
        root / "-home-dev-app" / "abc.jsonl",
        *(f"question {i} " + "x" * 80 for i in range(20)),
    )
    return root


class TestStartTime:
    def test_none(self):
        assert parse_start_time(None) is None

    def test_zulu(self):
        ts = parse_start_time("2025-01-15T12:00:00Z")
        assert ts.utcoffset().total_seconds() == 0
        assert ts.hour == 12

    def test_naive_is_local(self):
        assert parse_start_time("2025-01-15T12:00:00").tzinfo is not None

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_start_time("yesterday")


class TestResolveCommand:
    def test_resolves(self, projects, capsys):
        code = Resolve(cwd="/home/dev/app", projects_dir=projects).run()
        out = capsys.readouterr().out
        assert code == 0
        assert "abc.jsonl" in out
        assert "latest" in out

    def test_missing_directory(self, projects, capsys):
        code = Resolve(cwd="/nowhere/zzz", projects_dir=projects).run()
        assert code == 1
        assert "no session directory" in capsys.readouterr().err

    def test_bad_start_time(self, projects, capsys):
        code = Resolve(
            cwd="/home/dev/app", start_time="soon", projects_dir=projects
        ).run()
        assert code == 1


class TestTailCommand:
    def test_prints_last_entries(self, tmp_path, capsys):
        path = write_session(tmp_path / "s.jsonl", "one", "two", "three")
        assert Tail(path=path, lines=2).run() == 0
        out = capsys.readouterr().out
        assert "two" in out
        assert "three" in out
        assert "one" not in out

    def test_missing_file(self, tmp_path, capsys):
        assert Tail(path=tmp_path / "gone.jsonl").run() == 1
        assert "failed to load" in capsys.readouterr().err

    def test_main_dispatch(self, tmp_path, monkeypatch, capsys):
        path = write_session(tmp_path / "s.jsonl", "hello there")
        monkeypatch.setattr(
            sys, "argv", ["sessionscope", "tail", str(path), "--lines", "1"]
        )
        assert main() == 0
        assert "hello there" in capsys.readouterr().out


class TestUnseenEntries:
    def test_first_time_everything(self):
        entries = [SessionEntry("user", "a")]
        assert unseen_entries([], entries) == entries

    def test_only_after_last_seen(self):
        a = SessionEntry("user", "a")
        b = SessionEntry("assistant", "b")
        c = SessionEntry("user", "c")
        assert unseen_entries([a, b], [a, b, c]) == [c]
        # oldest dropped by the cap
        assert unseen_entries([a, b], [b, c]) == [c]

    def test_nothing_new(self):
        a = SessionEntry("user", "a")
        assert unseen_entries([a], [a]) == []

    def test_replaced_list_shows_all(self):
        old = SessionEntry("user", "old")
        new = [SessionEntry("user", "fresh")]
        assert unseen_entries([old], new) == new
