"""Document indexes, caching, queries and the indexer service.

Key Components:
    IndexerService: Scans documents from a DocumentSource and answers queries
    DocumentIndexCache: Version-fenced LRU cache of DocumentIndex objects
    Debouncer: Keyed, cancel-on-supersede scheduling of rescans
    DisplayModes: Presentation mode state (cursor and viewport are exclusive)
"""

from .cache import DocumentIndexCache
from .debounce import Debouncer
from .document import DocumentIndex, ScanResult, ScanStatus
from .modes import DisplayMode, DisplayModes
from .query import LineRange, all_disambiguated, annotation_label, at_line, in_range
from .service import IndexerService
from .source import DocumentSource, DocumentUnavailableError, InMemoryDocumentSource

__all__ = [
    "Debouncer",
    "DisplayMode",
    "DisplayModes",
    "DocumentIndex",
    "DocumentIndexCache",
    "DocumentSource",
    "DocumentUnavailableError",
    "InMemoryDocumentSource",
    "IndexerService",
    "LineRange",
    "ScanResult",
    "ScanStatus",
    "all_disambiguated",
    "annotation_label",
    "at_line",
    "in_range",
]
