"""Process discovery for running Claude Code CLIs.

The engine only depends on the ProcessLister protocol. PsProcessLister is
the default implementation: it shells out to `ps` for pid/tty/cpu/mem and
elapsed time, and to `lsof` for each process's working directory.
"""

from __future__ import annotations

import asyncio
import os
import re
import signal
from datetime import datetime, timedelta
from typing import Protocol

from sessionscope.errors import ProcessListerError
from sessionscope.logging_config import get_logger
from sessionscope.models import ProcessDescriptor

logger = get_logger(__name__)

# `claude` as the command itself, not chrome-native-host and friends
_CLAUDE_COMMAND = re.compile(r"^claude(\s|$)")
_EXCLUDED = ("chrome-native-host",)


class ProcessLister(Protocol):
    async def list_processes(self) -> list[ProcessDescriptor]: ...

    async def kill(self, pid: int, force: bool = False) -> bool: ...


def parse_elapsed(elapsed: str) -> int:
    """Seconds from ps etime format: [[DD-]HH:]MM:SS."""
    parts = re.split(r"[-:]", elapsed.strip())
    try:
        nums = [int(p) for p in parts]
    except ValueError:
        return 0
    if len(nums) == 2:
        return nums[0] * 60 + nums[1]
    if len(nums) == 3:
        return nums[0] * 3600 + nums[1] * 60 + nums[2]
    if len(nums) == 4:
        return nums[0] * 86400 + nums[1] * 3600 + nums[2] * 60 + nums[3]
    return 0


def start_time_from_elapsed(
    elapsed: str, now: datetime | None = None
) -> datetime | None:
    if not elapsed:
        return None
    now = now or datetime.now().astimezone()
    return now - timedelta(seconds=parse_elapsed(elapsed))


def parse_ps_output(stdout: str) -> list[dict[str, str]]:
    """Parse `ps -eo pid,tty,%cpu,%mem,etime,command` rows for claude."""
    rows: list[dict[str, str]] = []
    for line in stdout.splitlines()[1:]:
        parts = line.split(None, 5)
        if len(parts) < 6:
            continue
        pid, tty, cpu, mem, etime, command = parts
        if not pid.isdigit():
            continue
        if not _CLAUDE_COMMAND.match(command):
            continue
        if any(ex in command for ex in _EXCLUDED):
            continue
        rows.append(
            {
                "pid": pid,
                "tty": tty,
                "cpu": cpu,
                "mem": mem,
                "etime": etime,
            }
        )
    return rows


def parse_lsof_cwd(stdout: str) -> dict[int, str]:
    """Parse `lsof -a -d cwd -p ... -Fpn` field output into pid -> cwd."""
    result: dict[int, str] = {}
    pid: int | None = None
    for line in stdout.splitlines():
        if line.startswith("p"):
            try:
                pid = int(line[1:])
            except ValueError:
                pid = None
        elif line.startswith("n") and pid is not None:
            path = line[1:]
            if path.startswith("/"):
                result[pid] = path
    return result


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


async def _run(*args: str) -> tuple[int, str]:
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    stdout, _ = await proc.communicate()
    return proc.returncode or 0, stdout.decode(errors="replace")


class PsProcessLister:
    """Lists `claude` processes via ps and lsof."""

    async def list_processes(self) -> list[ProcessDescriptor]:
        try:
            _, stdout = await _run(
                "ps", "-eo", "pid,tty,%cpu,%mem,etime,command"
            )
        except OSError as e:
            raise ProcessListerError(f"ps failed: {e}") from e

        rows = parse_ps_output(stdout)
        if not rows:
            return []

        cwds = await self._cwds([int(r["pid"]) for r in rows])
        now = datetime.now().astimezone()
        procs = [
            ProcessDescriptor(
                pid=int(r["pid"]),
                cwd=cwds.get(int(r["pid"]), ""),
                start_time=start_time_from_elapsed(r["etime"], now),
                tty=r["tty"],
                cpu=_to_float(r["cpu"]),
                memory=_to_float(r["mem"]),
                elapsed=r["etime"],
            )
            for r in rows
        ]
        logger.debug("found %d claude process(es)", len(procs))
        return procs

    async def _cwds(self, pids: list[int]) -> dict[int, str]:
        try:
            _, stdout = await _run(
                "lsof",
                "-a",
                "-d",
                "cwd",
                "-p",
                ",".join(str(p) for p in pids),
                "-Fpn",
            )
        except OSError as e:
            logger.warning("lsof failed, working directories unknown: %s", e)
            return {}
        return parse_lsof_cwd(stdout)

    async def kill(self, pid: int, force: bool = False) -> bool:
        sig = signal.SIGKILL if force else signal.SIGTERM
        try:
            os.kill(pid, sig)
        except OSError as e:
            logger.warning("kill %d (%s) failed: %s", pid, sig.name, e)
            return False
        logger.info("sent %s to %d", sig.name, pid)
        return True
