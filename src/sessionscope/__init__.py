from sessionscope.cache import CacheStats, ContentCache
from sessionscope.config import EngineConfig
from sessionscope.engine import SessionEngine
from sessionscope.errors import (
    CacheLoadError,
    ProcessListerError,
    SessionScopeError,
)
from sessionscope.models import (
    ProcessDescriptor,
    ProcessSession,
    ResolvedSession,
    SessionEntry,
    SessionLogFile,
    Snapshot,
    TailResult,
)
from sessionscope.notifier import ChangeNotifier
from sessionscope.parser import EntryParser
from sessionscope.procs import ProcessLister, PsProcessLister
from sessionscope.resolver import DirectoryResolver, slug_for
from sessionscope.scanner import CandidateScanner
from sessionscope.selector import SessionSelector
from sessionscope.tail import TailOffsets, TailTracker

__all__ = [
    "CacheLoadError",
    "CacheStats",
    "CandidateScanner",
    "ChangeNotifier",
    "ContentCache",
    "DirectoryResolver",
    "EngineConfig",
    "EntryParser",
    "ProcessDescriptor",
    "ProcessLister",
    "ProcessListerError",
    "ProcessSession",
    "PsProcessLister",
    "ResolvedSession",
    "SessionEngine",
    "SessionEntry",
    "SessionLogFile",
    "SessionScopeError",
    "SessionSelector",
    "Snapshot",
    "TailOffsets",
    "TailResult",
    "TailTracker",
    "slug_for",
]
