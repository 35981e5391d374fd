"""Map a process working directory to its Claude Code session directory.

Claude Code stores transcripts in:
    ~/.claude/projects/<slug>/<session-id>.jsonl

Where <slug> is the working directory with "/", "_" and "." replaced by "-":
    /home/david/dev/galaxy_brain -> -home-david-dev-galaxy-brain
    /home/david/.local/share     -> -home-david--local-share

Older releases used different rules (only "/" replaced, or one of "_"/"."
kept), and the mapping is not invertible, so when the canonical slug is
missing we try the historical variants and then fall back to a
token-overlap score over every project directory.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

from sessionscope.config import DEFAULT_FUZZY_THRESHOLD, default_projects_dir
from sessionscope.logging_config import get_logger

logger = get_logger(__name__)

_LEADING_DASHES = re.compile(r"^-+")


def _slugify(cwd: str, chars: str) -> str:
    slug = re.sub(f"[{re.escape(chars)}]", "-", cwd)
    return _LEADING_DASHES.sub("-", slug)


def slug_for(cwd: str) -> str:
    """Canonical project directory name for a working directory."""
    return _slugify(cwd, "/_.")


def variants_for(cwd: str) -> list[str]:
    """Candidate directory names, canonical first, duplicates removed.

    /a/b_c.d -> -a-b-c-d, -a-b_c.d, -a-b-c.d, -a-b_c-d
    """
    variants = [
        slug_for(cwd),
        _slugify(cwd, "/"),
        _slugify(cwd, "/_ "),
        _slugify(cwd, "/. "),
    ]
    return list(dict.fromkeys(variants))


def overlap_score(cwd: str, dir_name: str) -> float:
    """Fraction of cwd path segments that overlap some slug token.

    A segment overlaps a token when either is a substring of the other.
    """
    segments = [p for p in cwd.split("/") if p]
    if not segments:
        return 0.0
    tokens = [t for t in dir_name.split("-") if t]
    matched = sum(
        1
        for seg in segments
        if any(seg in tok or tok in seg for tok in tokens)
    )
    return matched / len(segments)


class DirectoryResolver:
    """Resolves working directories to session directories.

    Hits are cached per cwd string for the lifetime of the resolver, since
    a project directory never changes identity once Claude Code creates it.
    Misses are not cached so a session started later is still found.
    """

    def __init__(
        self,
        projects_dir: Path | None = None,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        self.projects_dir = Path(
            os.path.abspath(projects_dir or default_projects_dir())
        )
        self.fuzzy_threshold = fuzzy_threshold
        self._cache: dict[str, Path] = {}

    async def resolve(self, cwd: str) -> Path | None:
        """Return the session directory for cwd, or None if not found."""
        cached = self._cache.get(cwd)
        if cached is not None:
            return cached

        resolved = await asyncio.to_thread(self._resolve_uncached, cwd)
        if resolved is not None:
            self._cache[cwd] = resolved
        return resolved

    def clear(self) -> None:
        self._cache.clear()

    def _resolve_uncached(self, cwd: str) -> Path | None:
        canonical = self.projects_dir / slug_for(cwd)
        if canonical.is_dir():
            logger.debug("resolved %s -> %s", cwd, canonical.name)
            return canonical

        name = self._fuzzy_match(cwd)
        if name is None:
            logger.debug("no session directory for %s", cwd)
            return None
        return self.projects_dir / name

    def _fuzzy_match(self, cwd: str) -> str | None:
        try:
            all_dirs = sorted(
                p.name for p in self.projects_dir.iterdir() if p.is_dir()
            )
        except OSError as e:
            logger.debug(
                "cannot list projects dir %s: %s", self.projects_dir, e
            )
            return None

        existing = set(all_dirs)
        for variant in variants_for(cwd):
            if variant in existing:
                logger.debug("resolved %s via variant %s", cwd, variant)
                return variant

        best_name: str | None = None
        best_score = 0.0
        for name in all_dirs:
            score = overlap_score(cwd, name)
            if score > best_score:
                best_name, best_score = name, score

        if best_name is not None and best_score > self.fuzzy_threshold:
            logger.debug(
                "resolved %s via fuzzy match %s (score=%.2f)",
                cwd,
                best_name,
                best_score,
            )
            return best_name

        logger.debug(
            "fuzzy match below threshold for %s (best=%s score=%.2f)",
            cwd,
            best_name,
            best_score,
        )
        return None
