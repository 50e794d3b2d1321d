"""Version-gated, bounded cache of document indexes.

The cache holds at most one DocumentIndex per document key and evicts the
least recently used entries beyond its capacity. Scans may complete out of
order, so writes coming from a scan go through ``commit``, which refuses a
result when a newer version of the document has already been observed.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

from xml_sibling_indexer.shared import CacheConfig, CacheStatistics, get_logger

from .document import DocumentIndex


class DocumentIndexCache:
    """LRU cache of DocumentIndex objects keyed by document identity.

    All methods are synchronous. Callers on an event loop therefore get the
    version fence check and the write in ``commit`` without any suspension
    point between them.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the cache.

        Args:
            config: Cache capacity configuration
            correlation_id: Optional correlation ID of the owning indexer
        """
        self.config = config or CacheConfig()
        self.logger = get_logger(__name__, correlation_id, "index_cache")
        self._entries: "OrderedDict[str, DocumentIndex]" = OrderedDict()
        self._latest_versions: Dict[str, int] = {}
        self._stats = CacheStatistics(capacity=self.config.capacity)

    @property
    def capacity(self) -> int:
        return self.config.capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, document_key: object) -> bool:
        return document_key in self._entries

    def keys(self) -> List[str]:
        """Cached document keys, least recently used first."""
        return list(self._entries)

    def get(self, document_key: str, current_version: int) -> Optional[DocumentIndex]:
        """Return the cached index only if it reflects ``current_version``.

        A hit marks the entry as most recently used. ``None`` means the
        caller must rescan.
        """
        index = self._entries.get(document_key)
        if index is None or index.version != current_version:
            self._stats.misses += 1
            return None

        self._entries.move_to_end(document_key)
        self._stats.hits += 1
        return index

    def peek(self, document_key: str) -> Optional[DocumentIndex]:
        """Cached index regardless of version, without touching recency."""
        return self._entries.get(document_key)

    def put(self, document_key: str, index: DocumentIndex) -> None:
        """Store or replace the entry, then evict beyond capacity."""
        if index.document_key != document_key:
            raise ValueError(
                f"Index for {index.document_key!r} cannot be stored under {document_key!r}"
            )
        self._entries[document_key] = index
        self._entries.move_to_end(document_key)
        self.observe_version(document_key, index.version)

        while len(self._entries) > self.config.capacity:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._latest_versions.pop(evicted_key, None)
            self._stats.evictions += 1
            self.logger.debug(
                "Evicted least recently used index",
                extra={"document_key": evicted_key, "version": evicted.version},
            )

    def observe_version(self, document_key: str, version: int) -> None:
        """Record that ``version`` of a document has been seen."""
        if version > self._latest_versions.get(document_key, version - 1):
            self._latest_versions[document_key] = version

    def latest_version(self, document_key: str) -> Optional[int]:
        """Newest version observed for a document, if any."""
        return self._latest_versions.get(document_key)

    def commit(self, index: DocumentIndex) -> bool:
        """Store a scan result unless it has been superseded.

        The result is rejected when a newer version of the document has been
        observed, or when the cache already holds a newer index.

        Returns:
            True if the index was stored
        """
        key = index.document_key
        latest = self._latest_versions.get(key)
        current = self._entries.get(key)

        if (latest is not None and latest > index.version) or (
            current is not None and current.version > index.version
        ):
            self._stats.rejected_commits += 1
            self.logger.debug(
                "Discarded stale scan result",
                extra={"document_key": key, "version": index.version,
                       "latest_version": latest,
                       "cached_version": current.version if current else None},
            )
            return False

        self.put(key, index)
        return True

    def invalidate(self, document_key: str) -> bool:
        """Remove a document's entry and version record.

        Returns:
            True if an entry was cached
        """
        self._latest_versions.pop(document_key, None)
        removed = self._entries.pop(document_key, None) is not None
        if removed:
            self.logger.debug("Invalidated cached index", extra={"document_key": document_key})
        return removed

    def clear(self) -> None:
        self._entries.clear()
        self._latest_versions.clear()

    def statistics(self) -> CacheStatistics:
        """Snapshot of cache counters."""
        return CacheStatistics(
            size=len(self._entries),
            capacity=self.config.capacity,
            hits=self._stats.hits,
            misses=self._stats.misses,
            evictions=self._stats.evictions,
            rejected_commits=self._stats.rejected_commits,
        )
