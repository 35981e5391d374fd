"""Engine configuration and environment overrides.

Thresholds are heuristics tuned to Claude Code's session layout.

Environment variables:
    SESSIONSCOPE_PROJECTS_DIR: Root holding per-project session dirs
        (default: ~/.claude/projects)
    SESSIONSCOPE_MIN_SESSION_BYTES: Smallest file eligible for selection
    SESSIONSCOPE_BIRTH_TOLERANCE: Birth-time match window, seconds
    SESSIONSCOPE_MTIME_TOLERANCE: Modification-time match window, seconds
    SESSIONSCOPE_FUZZY_THRESHOLD: Minimum token-overlap score (0-1)
    SESSIONSCOPE_CACHE_SIZE: Content cache entry budget
    SESSIONSCOPE_CACHE_TTL: Content cache entry lifetime, seconds
    SESSIONSCOPE_MAX_ENTRIES: Entries kept per process
    SESSIONSCOPE_MAX_CONTENT: Max characters per entry
    SESSIONSCOPE_STAT_CONCURRENCY: Concurrent stats per directory scan
    SESSIONSCOPE_SESSION_CONCURRENCY: Processes resolved concurrently
    SESSIONSCOPE_DEBOUNCE_MS: Per-path change debounce
    SESSIONSCOPE_STABILITY_MS: Quiet period before a write batch is emitted
    SESSIONSCOPE_REFRESH_INTERVAL: Periodic refresh interval, seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PROJECTS_DIR = "SESSIONSCOPE_PROJECTS_DIR"
ENV_MIN_SESSION_BYTES = "SESSIONSCOPE_MIN_SESSION_BYTES"
ENV_BIRTH_TOLERANCE = "SESSIONSCOPE_BIRTH_TOLERANCE"
ENV_MTIME_TOLERANCE = "SESSIONSCOPE_MTIME_TOLERANCE"
ENV_FUZZY_THRESHOLD = "SESSIONSCOPE_FUZZY_THRESHOLD"
ENV_CACHE_SIZE = "SESSIONSCOPE_CACHE_SIZE"
ENV_CACHE_TTL = "SESSIONSCOPE_CACHE_TTL"
ENV_MAX_ENTRIES = "SESSIONSCOPE_MAX_ENTRIES"
ENV_MAX_CONTENT = "SESSIONSCOPE_MAX_CONTENT"
ENV_STAT_CONCURRENCY = "SESSIONSCOPE_STAT_CONCURRENCY"
ENV_SESSION_CONCURRENCY = "SESSIONSCOPE_SESSION_CONCURRENCY"
ENV_DEBOUNCE_MS = "SESSIONSCOPE_DEBOUNCE_MS"
ENV_STABILITY_MS = "SESSIONSCOPE_STABILITY_MS"
ENV_REFRESH_INTERVAL = "SESSIONSCOPE_REFRESH_INTERVAL"

SESSION_SUFFIX = ".jsonl"

DEFAULT_MIN_SESSION_BYTES = 1024
DEFAULT_BIRTH_TOLERANCE = 300.0  # 5 minutes
DEFAULT_MTIME_TOLERANCE = 600.0  # 10 minutes
DEFAULT_FUZZY_THRESHOLD = 0.7
DEFAULT_CACHE_SIZE = 50
DEFAULT_CACHE_TTL = 300.0
DEFAULT_MAX_ENTRIES = 100
DEFAULT_MAX_CONTENT = 100
DEFAULT_STAT_CONCURRENCY = 10
DEFAULT_SESSION_CONCURRENCY = 5
DEFAULT_DEBOUNCE_MS = 100
DEFAULT_STABILITY_MS = 50
DEFAULT_REFRESH_INTERVAL = 2.0


def default_projects_dir() -> Path:
    """Claude Code keeps one directory per project under here."""
    env_dir = os.environ.get(ENV_PROJECTS_DIR)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".claude" / "projects"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class EngineConfig:
    """Tunables shared by the resolver, selector, cache, and notifier."""

    projects_dir: Path = field(default_factory=default_projects_dir)
    min_session_bytes: int = DEFAULT_MIN_SESSION_BYTES
    birth_tolerance: float = DEFAULT_BIRTH_TOLERANCE
    mtime_tolerance: float = DEFAULT_MTIME_TOLERANCE
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    cache_max_entries: int = DEFAULT_CACHE_SIZE
    cache_ttl: float = DEFAULT_CACHE_TTL
    max_entries: int = DEFAULT_MAX_ENTRIES
    max_content_length: int = DEFAULT_MAX_CONTENT
    stat_concurrency: int = DEFAULT_STAT_CONCURRENCY
    session_concurrency: int = DEFAULT_SESSION_CONCURRENCY
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    stability_ms: int = DEFAULT_STABILITY_MS
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from SESSIONSCOPE_* env vars.

        Unparseable values fall back to the defaults.
        """
        return cls(
            projects_dir=default_projects_dir(),
            min_session_bytes=_env_int(
                ENV_MIN_SESSION_BYTES, DEFAULT_MIN_SESSION_BYTES
            ),
            birth_tolerance=_env_float(
                ENV_BIRTH_TOLERANCE, DEFAULT_BIRTH_TOLERANCE
            ),
            mtime_tolerance=_env_float(
                ENV_MTIME_TOLERANCE, DEFAULT_MTIME_TOLERANCE
            ),
            fuzzy_threshold=_env_float(
                ENV_FUZZY_THRESHOLD, DEFAULT_FUZZY_THRESHOLD
            ),
            cache_max_entries=_env_int(ENV_CACHE_SIZE, DEFAULT_CACHE_SIZE),
            cache_ttl=_env_float(ENV_CACHE_TTL, DEFAULT_CACHE_TTL),
            max_entries=_env_int(ENV_MAX_ENTRIES, DEFAULT_MAX_ENTRIES),
            max_content_length=_env_int(ENV_MAX_CONTENT, DEFAULT_MAX_CONTENT),
            stat_concurrency=_env_int(
                ENV_STAT_CONCURRENCY, DEFAULT_STAT_CONCURRENCY
            ),
            session_concurrency=_env_int(
                ENV_SESSION_CONCURRENCY, DEFAULT_SESSION_CONCURRENCY
            ),
            debounce_ms=_env_int(ENV_DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS),
            stability_ms=_env_int(ENV_STABILITY_MS, DEFAULT_STABILITY_MS),
            refresh_interval=_env_float(
                ENV_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL
            ),
        )
