"""structlog setup for sessionscope.

Logging is quiet by default (warnings and errors on stderr). Set
SESSIONSCOPE_DEBUG=1 to get debug output, and SESSIONSCOPE_LOG_FILE to send
it to a file instead of stderr (useful while `sessionscope watch` owns the
terminal).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

ENV_DEBUG = "SESSIONSCOPE_DEBUG"
ENV_LOG_FILE = "SESSIONSCOPE_LOG_FILE"

_configured = False


def is_debug_enabled() -> bool:
    return os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes", "on")


def configure_logging(
    log_file: Path | None = None, force: bool = False
) -> None:
    """Configure structlog once per process.

    Args:
        log_file: Write logs here instead of stderr. Falls back to
            SESSIONSCOPE_LOG_FILE when not given.
        force: Reconfigure even if logging was already set up.
    """
    global _configured
    if _configured and not force:
        return

    level = logging.DEBUG if is_debug_enabled() else logging.WARNING

    if log_file is None:
        env_file = os.environ.get(ENV_LOG_FILE)
        if env_file:
            log_file = Path(env_file)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        stream: Any = log_file.open("a", encoding="utf-8")
        colors = False
    else:
        stream = sys.stderr
        colors = stream.isatty()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        # module loggers must follow a forced reconfigure
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Get a named structlog logger."""
    return structlog.get_logger(name)
