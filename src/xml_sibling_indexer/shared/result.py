"""Result objects and diagnostic types for sibling indexing.

Scans never raise for malformed markup; instead they report what happened
through diagnostics and metrics attached to their results.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()    # Degraded result, e.g. reduced precision
    ERROR = auto()      # Document could not be indexed


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    document_key: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")


@dataclass
class ScanMetrics:
    """Performance and degradation metrics for a single scan."""

    processing_time_ms: float = 0.0
    characters_processed: int = 0
    occurrences_found: int = 0
    chunks_processed: int = 0
    yields: int = 0
    unmatched_closes: int = 0
    mismatched_closes: int = 0
    position_fallbacks: int = 0

    @property
    def characters_per_second(self) -> float:
        """Calculate characters processed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.characters_processed * 1000.0) / self.processing_time_ms

    @property
    def malformed_closes(self) -> int:
        """Total close tags that did not match the innermost open tag."""
        return self.unmatched_closes + self.mismatched_closes


@dataclass
class CacheStatistics:
    """Counters describing document index cache behaviour."""

    size: int = 0
    capacity: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    rejected_commits: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total
