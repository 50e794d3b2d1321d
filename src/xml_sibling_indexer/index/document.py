"""Document index and scan result objects."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple

from xml_sibling_indexer.shared import DiagnosticEntry, DiagnosticSeverity, ScanMetrics
from xml_sibling_indexer.tokenization import TagOccurrence


@dataclass(frozen=True)
class DocumentIndex:
    """Immutable scan result for one document version.

    A rescan always produces a new DocumentIndex; cached instances are never
    mutated.
    """

    document_key: str
    version: int
    occurrences: Tuple[TagOccurrence, ...] = ()
    chunked: bool = False
    metrics: ScanMetrics = field(default_factory=ScanMetrics, compare=False)

    def __post_init__(self) -> None:
        """Validate id contiguity."""
        for expected, occ in enumerate(self.occurrences, start=1):
            if occ.id != expected:
                raise ValueError(
                    f"Occurrence ids must be contiguous from 1; "
                    f"found {occ.id} at position {expected}"
                )

    def __len__(self) -> int:
        return len(self.occurrences)

    @property
    def ambiguous_count(self) -> int:
        """Number of occurrences that need disambiguation."""
        return sum(1 for occ in self.occurrences if occ.needs_disambiguation)

    def get(self, occurrence_id: int) -> Optional[TagOccurrence]:
        """Occurrence by id, or ``None``."""
        if 1 <= occurrence_id <= len(self.occurrences):
            return self.occurrences[occurrence_id - 1]
        return None

    def summary(self) -> Dict[str, Any]:
        """Summary statistics for reporting."""
        return {
            "document_key": self.document_key,
            "version": self.version,
            "occurrence_count": len(self.occurrences),
            "ambiguous_count": self.ambiguous_count,
            "chunked": self.chunked,
            "processing_time_ms": self.metrics.processing_time_ms,
            "malformed_closes": self.metrics.malformed_closes,
        }


class ScanStatus(Enum):
    """Outcome of an IndexerService scan."""

    SCANNED = auto()        # Fresh index committed to the cache
    CACHED = auto()         # Served from cache, content unchanged
    STALE = auto()          # Superseded by a newer version; result discarded
    UNAVAILABLE = auto()    # Document no longer exists in the source
    UNSUPPORTED = auto()    # Document language is not indexed


@dataclass
class ScanResult:
    """Result of a scan request, never raised across the service boundary."""

    document_key: str
    status: ScanStatus
    index: Optional[DocumentIndex] = None
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    correlation_id: Optional[str] = None

    @property
    def success(self) -> bool:
        """True when ``index`` holds a current result."""
        return self.status in (ScanStatus.SCANNED, ScanStatus.CACHED)

    @property
    def from_cache(self) -> bool:
        return self.status is ScanStatus.CACHED

    @property
    def occurrences(self) -> Tuple[TagOccurrence, ...]:
        return self.index.occurrences if self.index is not None else ()

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add a diagnostic entry."""
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            document_key=self.document_key,
            details=details,
            correlation_id=self.correlation_id,
        ))

    def has_errors(self) -> bool:
        return any(diag.severity is DiagnosticSeverity.ERROR for diag in self.diagnostics)
