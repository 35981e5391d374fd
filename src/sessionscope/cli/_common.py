"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from sessionscope.cache import ContentCache
from sessionscope.config import EngineConfig
from sessionscope.logging_config import ENV_DEBUG, configure_logging
from sessionscope.parser import EntryParser
from sessionscope.tail import TailTracker


def load_config(projects_dir: Path | None = None) -> EngineConfig:
    config = EngineConfig.from_env()
    if projects_dir is not None:
        config.projects_dir = projects_dir.expanduser()
    return config


def enable_debug() -> None:
    os.environ[ENV_DEBUG] = "1"
    configure_logging(force=True)


def make_tail(
    config: EngineConfig, max_entries: int | None = None
) -> TailTracker:
    cache = ContentCache(
        max_entries=config.cache_max_entries, ttl=config.cache_ttl
    )
    parser = EntryParser(
        max_content_length=config.max_content_length,
        max_entries=max_entries or config.max_entries,
    )
    return TailTracker(cache, parser)


def parse_start_time(value: str | None) -> datetime | None:
    """ISO 8601 timestamp; naive values are taken as local time."""
    if not value:
        return None
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts
