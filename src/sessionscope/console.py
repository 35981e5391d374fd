"""Terminal output helpers for the CLI, built on rich."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.status import Status

_out = Console(highlight=False, soft_wrap=True)
_err = Console(stderr=True, highlight=False, soft_wrap=True)


def error(msg: str) -> None:
    _err.print(f"[bold red]error:[/] {escape(msg)}")


def warning(msg: str) -> None:
    _err.print(f"[yellow]warning:[/] {escape(msg)}")


def info(msg: str) -> None:
    _out.print(f"[cyan]{escape(msg)}[/]")


def success(msg: str) -> None:
    _out.print(f"[green]{escape(msg)}[/]")


def dim(msg: str) -> None:
    _out.print(f"[dim]{escape(msg)}[/]")


def header(msg: str) -> None:
    _out.print(f"[bold underline]{escape(msg)}[/]")


def subheader(msg: str) -> None:
    _out.print(f"[bold]{escape(msg)}[/]")


def key_value(key: str, value: Any, indent: int = 0) -> None:
    pad = " " * indent
    _out.print(f"{pad}[bold]{escape(key)}:[/] {escape(str(value))}")


def entry(role: str, content: str, timestamp: str = "") -> None:
    """One transcript line: `[hh:mm:ss] user  text`."""
    color = "magenta" if role == "user" else "blue"
    stamp = f"[dim]{escape(timestamp[11:19])}[/] " if timestamp else ""
    _out.print(f"{stamp}[{color}]{role:<9}[/] {escape(content)}")


def status(msg: str) -> AbstractContextManager[Status]:
    return _err.status(msg)
