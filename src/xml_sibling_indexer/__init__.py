"""XML Sibling Indexer.

Finds repeated sibling elements in markup documents and numbers them, so the
3rd ``<Item>`` under a parent can be told apart from the others. Malformed
markup never raises; results degrade instead.

Progressive API Disclosure:
- Level 1: Simple function - index_text()
- Level 2: Document service - IndexerService with a DocumentSource
- Level 3: Building blocks - TagTokenizer, SiblingGrouper, ChunkedScanner,
  DocumentIndexCache
"""

__version__ = "0.1.0"
__author__ = "XML Sibling Indexer Team"

from typing import Optional

from .index import (
    DocumentIndex,
    DocumentSource,
    DocumentUnavailableError,
    InMemoryDocumentSource,
    IndexerService,
    ScanResult,
    ScanStatus,
)
from .shared.config import IndexerConfig
from .tokenization import (
    ROOT_ID,
    SiblingGrouper,
    TagOccurrence,
    TagTokenizer,
)


def index_text(
    text: str,
    document_key: str = "<memory>",
    version: int = 1,
    correlation_id: Optional[str] = None
) -> DocumentIndex:
    """Tokenize and group ``text`` synchronously with full nesting.

    Always uses the nesting-aware path regardless of size; use
    IndexerService for caching and the chunked large-document path.

    Examples:
        >>> index = index_text("<a><b/><b/><c/></a>")
        >>> [(occ.tag, occ.order_in_group, occ.group_size) for occ in index.occurrences]
        [('a', 1, 1), ('b', 1, 2), ('b', 2, 2), ('c', 1, 1)]
    """
    tokenizer = TagTokenizer(correlation_id)
    occurrences = tokenizer.tokenize(text)
    grouped = SiblingGrouper(correlation_id).group(occurrences)
    return DocumentIndex(document_key, version, tuple(grouped),
                         metrics=tokenizer.last_metrics)


__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple indexing function
    "index_text",

    # Level 2: Service and collaborator contract
    "IndexerService",
    "DocumentSource",
    "DocumentUnavailableError",
    "InMemoryDocumentSource",

    # Result objects and data structures
    "DocumentIndex",
    "ScanResult",
    "ScanStatus",
    "TagOccurrence",
    "ROOT_ID",

    # Configuration
    "IndexerConfig",
]
