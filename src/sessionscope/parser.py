"""Turn Claude Code transcript lines into user/assistant entries.

Each transcript line is a standalone JSON record. Only two shapes are kept:

    {"type": "user", "message": {"content": "plain text"}, ...}
    {"type": "assistant", "message": {"content": [{"type": "text", ...}]}}

User records whose content is a list (tool results) and slash-command
echoes are dropped, as is everything else (summaries, tool calls, system
records).
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

from sessionscope.config import DEFAULT_MAX_CONTENT, DEFAULT_MAX_ENTRIES
from sessionscope.logging_config import get_logger
from sessionscope.models import SessionEntry

logger = get_logger(__name__)

ELLIPSIS = "..."

# command/tool echoes written into user records
META_PREFIXES = ("<local-command", "<command-name>", "<command-message>")

_WHITESPACE = re.compile(r"\s+")


def truncate(text: str, max_len: int = DEFAULT_MAX_CONTENT) -> str:
    """Collapse whitespace and cap length, ending with "..." if cut."""
    clean = _WHITESPACE.sub(" ", text).strip()
    if len(clean) <= max_len:
        return clean
    if max_len <= len(ELLIPSIS):
        return clean[: max(0, max_len)]
    return clean[: max_len - len(ELLIPSIS)] + ELLIPSIS


def is_meta_message(text: str) -> bool:
    return text.startswith(META_PREFIXES)


def extract_user_text(content: Any) -> str:
    # list-form content is tool_result plumbing, not something the user typed
    if isinstance(content, str):
        return content
    return ""


def extract_assistant_text(content: Any) -> str:
    if not isinstance(content, list):
        return ""
    parts = [
        item["text"]
        for item in content
        if isinstance(item, dict)
        and item.get("type") == "text"
        and isinstance(item.get("text"), str)
        and item["text"]
    ]
    return "\n".join(parts)


class EntryParser:
    """Parses transcript lines; bad lines never affect their neighbours."""

    def __init__(
        self,
        max_content_length: int = DEFAULT_MAX_CONTENT,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.max_content_length = max_content_length
        self.max_entries = max_entries

    def parse_line(self, line: str) -> SessionEntry | None:
        if not line.strip():
            return None
        try:
            record = json.loads(line)
        except (ValueError, RecursionError):
            logger.debug("skipping non-JSON line: %s...", line[:50])
            return None
        if not isinstance(record, dict):
            return None

        message = record.get("message")
        if not isinstance(message, dict) or not message.get("content"):
            return None
        content = message["content"]
        timestamp = record.get("timestamp") or ""
        if not isinstance(timestamp, str):
            timestamp = str(timestamp)

        kind = record.get("type")
        if kind == "user":
            text = extract_user_text(content)
            if not text or is_meta_message(text):
                return None
            return SessionEntry(
                role="user",
                content=truncate(text, self.max_content_length),
                timestamp=timestamp,
            )

        if kind == "assistant":
            text = extract_assistant_text(content)
            if not text:
                return None
            return SessionEntry(
                role="assistant",
                content=truncate(text, self.max_content_length),
                timestamp=timestamp,
            )

        return None

    def parse(self, lines: Iterable[str]) -> list[SessionEntry]:
        """Parse every line, keeping file order."""
        entries: list[SessionEntry] = []
        for line in lines:
            entry = self.parse_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def parse_all(self, lines: Iterable[str]) -> list[SessionEntry]:
        """Parse a whole file, keeping only the newest max_entries."""
        entries = self.parse(lines)
        if self.max_entries <= 0:
            return []
        if len(entries) > self.max_entries:
            return entries[-self.max_entries :]
        return entries
