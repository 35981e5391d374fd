"""Exceptions raised by sessionscope.

A resolution miss is not an error: resolvers and selectors return None
and the engine reports an empty session path. Exceptions are reserved for
files that were expected to exist but could not be read, and for a
process lister that could not run at all.
"""

from __future__ import annotations

from pathlib import Path


class SessionScopeError(Exception):
    """Base class for sessionscope errors."""


class CacheLoadError(SessionScopeError):
    """A session file could not be stat'ed or read through the cache."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to load {path}: {reason}")


class ProcessListerError(SessionScopeError):
    """The process lister failed to enumerate processes."""
