"""Indexer service: scanning, caching and lifecycle event handling.

IndexerService is the single entry point presentation collaborators talk to.
It owns its cache, version records, debouncer and display modes, so several
independent services can coexist in one process.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from xml_sibling_indexer.shared import (
    DiagnosticSeverity,
    IndexerConfig,
    ScanMetrics,
    get_logger,
)
from xml_sibling_indexer.tokenization import (
    ChunkedScanner,
    SiblingGrouper,
    TagOccurrence,
    TagTokenizer,
)

from .cache import DocumentIndexCache
from .debounce import Debouncer
from .document import DocumentIndex, ScanResult, ScanStatus
from .modes import DisplayModes
from .query import LineRange, all_disambiguated, at_line, in_range
from .source import DocumentSource, DocumentUnavailableError

MS_PER_SECOND = 1000


class IndexerService:
    """Version-gated tag indexing over documents supplied by a DocumentSource.

    Normal-sized documents are tokenized with full nesting and never suspend.
    Documents longer than ``scan.large_file_threshold`` go through the
    chunked scanner, which yields to the event loop and reports every
    occurrence at top level.

    Examples:
        >>> source = InMemoryDocumentSource()
        >>> source.open("doc", "<a><b/><b/></a>")
        1
        >>> async with IndexerService(source) as service:
        ...     result = await service.scan("doc")
        ...     [occ.order_in_group for occ in await service.query_all("doc")]
        [1, 2]
    """

    def __init__(
        self,
        source: DocumentSource,
        config: Optional[IndexerConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the service.

        Args:
            source: Collaborator supplying document text, versions and positions
            config: Indexer configuration
            correlation_id: Optional correlation ID; defaults to the config's
        """
        self.source = source
        self.config = config or IndexerConfig()
        self.correlation_id = correlation_id or self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, "indexer_service")

        self.cache = DocumentIndexCache(self.config.cache, self.correlation_id)
        self.debouncer = Debouncer(self.config.debounce, self.correlation_id)
        self.modes = DisplayModes()

        self._tokenizer = TagTokenizer(self.correlation_id)
        self._chunked_scanner = ChunkedScanner(self.config.scan, self.correlation_id)
        self._grouper = SiblingGrouper(self.correlation_id)

        self.scan_count = 0
        self._closed = False
        # Bumped on close/invalidate so in-flight scans of a dropped document are discarded
        self._generations: Dict[str, int] = {}
        self._dropped_results = 0

    async def __aenter__(self) -> "IndexerService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Cancel pending rescans and drop all cached indexes."""
        if self._closed:
            return
        cancelled = self.debouncer.cancel_all()
        self.cache.clear()
        self._closed = True
        self.logger.info("Indexer service closed", extra={"cancelled_rescans": cancelled})

    # Scanning

    async def scan(self, document_key: str) -> ScanResult:
        """Return the index for the document's current version, scanning if needed.

        Never raises for document content. A document that disappears before
        or during the scan yields ``UNAVAILABLE``; a scan overtaken by a newer
        version yields ``STALE`` and is not cached.
        """
        try:
            version = self.source.get_version(document_key)
            language_id = self.source.get_language_id(document_key)
        except DocumentUnavailableError as e:
            return self._unavailable(document_key, e)

        if language_id is not None and not self.config.supports_language(language_id):
            self.invalidate(document_key)
            result = ScanResult(document_key, ScanStatus.UNSUPPORTED,
                                correlation_id=self.correlation_id)
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                f"Language '{language_id}' is not indexed",
                "indexer_service",
                details={"languages": list(self.config.languages)},
            )
            return result

        self.cache.observe_version(document_key, version)
        cached = self.cache.get(document_key, version)
        if cached is not None:
            result = ScanResult(document_key, ScanStatus.CACHED, cached,
                                correlation_id=self.correlation_id)
            self._add_precision_warning(result, cached)
            return result

        generation = self._generations.get(document_key, 0)

        try:
            text = self.source.get_text(document_key)
        except DocumentUnavailableError as e:
            return self._unavailable(document_key, e)

        index = await self._build_index(document_key, version, text)
        return self._commit(index, generation)

    async def _build_index(self, document_key: str, version: int, text: str) -> DocumentIndex:
        start_time = time.perf_counter()
        metrics = ScanMetrics()

        def position_at(offset: int) -> int:
            return self.source.position_at(document_key, offset)

        chunked = (self.config.scan.enable_chunked_path
                   and len(text) > self.config.scan.large_file_threshold)
        if chunked:
            occurrences = await self._chunked_scanner.scan(
                text, position_at=position_at, metrics=metrics
            )
        else:
            occurrences = self._tokenizer.tokenize(text, position_at, metrics=metrics)
        self.scan_count += 1

        grouped = self._grouper.group(occurrences)
        metrics.processing_time_ms = (time.perf_counter() - start_time) * MS_PER_SECOND

        self.logger.info(
            "Scanned document",
            extra={
                "document_key": document_key,
                "version": version,
                "occurrences": len(grouped),
                "chunked": chunked,
                "processing_time_ms": metrics.processing_time_ms,
            },
        )
        return DocumentIndex(document_key, version, tuple(grouped), chunked, metrics)

    def _commit(self, index: DocumentIndex, generation: int) -> ScanResult:
        # Runs without suspension: the source check and the cache write
        # happen atomically with respect to the event loop.
        key = index.document_key
        if self._closed or self._generations.get(key, 0) != generation:
            self._dropped_results += 1
            return self._stale(index, "Document closed or invalidated during scan")

        try:
            self.cache.observe_version(key, self.source.get_version(key))
        except DocumentUnavailableError as e:
            self.cache.invalidate(key)
            return self._unavailable(key, e)

        if not self.cache.commit(index):
            return self._stale(index, "Scan result superseded by a newer document version")

        result = ScanResult(key, ScanStatus.SCANNED, index, correlation_id=self.correlation_id)
        self._add_precision_warning(result, index)
        return result

    def _stale(self, index: DocumentIndex, reason: str) -> ScanResult:
        key = index.document_key
        self.logger.debug(reason, extra={"document_key": key, "version": index.version})
        result = ScanResult(key, ScanStatus.STALE, correlation_id=self.correlation_id)
        result.add_diagnostic(
            DiagnosticSeverity.DEBUG,
            reason,
            "indexer_service",
            details={"version": index.version,
                     "latest_version": self.cache.latest_version(key)},
        )
        return result

    def _add_precision_warning(self, result: ScanResult, index: DocumentIndex) -> None:
        if index.chunked:
            result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                "Large document scanned in chunks; siblings are grouped document-wide",
                "chunked_scanner",
                details={"length": index.metrics.characters_processed,
                         "threshold": self.config.scan.large_file_threshold},
            )

    def _unavailable(self, document_key: str, error: DocumentUnavailableError) -> ScanResult:
        self.logger.warning(
            "Document unavailable",
            extra={"document_key": document_key, "reason": error.reason},
        )
        result = ScanResult(document_key, ScanStatus.UNAVAILABLE,
                            correlation_id=self.correlation_id)
        result.add_diagnostic(DiagnosticSeverity.ERROR, str(error), "indexer_service")
        return result

    def invalidate(self, document_key: str) -> bool:
        """Drop the cached index for a document.

        Scans of the document already in flight are discarded when they finish.
        """
        self._generations[document_key] = self._generations.get(document_key, 0) + 1
        return self.cache.invalidate(document_key)

    async def _current_result(self, document_key: str) -> ScanResult:
        # A scan overtaken by an edit is retried against the newer version;
        # one overtaken by close/invalidate is not.
        while True:
            generation = self._generations.get(document_key, 0)
            result = await self.scan(document_key)
            if (result.status is not ScanStatus.STALE or self._closed
                    or self._generations.get(document_key, 0) != generation):
                return result

    # Queries

    async def query_all(self, document_key: str) -> List[TagOccurrence]:
        """All occurrences needing disambiguation; empty if the document is unavailable."""
        result = await self._current_result(document_key)
        if not result.success:
            return []
        return all_disambiguated(result.index)

    async def query_in_viewport(
        self,
        document_key: str,
        ranges: Sequence[LineRange]
    ) -> List[TagOccurrence]:
        """Occurrences needing disambiguation on the given visible line ranges."""
        return in_range(await self.query_all(document_key), ranges)

    async def query_at_cursor(self, document_key: str, line: int) -> Optional[TagOccurrence]:
        """The occurrence needing disambiguation on the cursor line, if any."""
        result = await self._current_result(document_key)
        if not result.success:
            return None
        return at_line(result.index.occurrences, line)

    # Lifecycle events

    async def on_opened(self, document_key: str) -> ScanResult:
        """Document opened or became active."""
        return await self.scan(document_key)

    async def on_saved(self, document_key: str) -> ScanResult:
        return await self.scan(document_key)

    def on_changed(
        self,
        document_key: str,
        change_size: int = 0
    ) -> Optional["asyncio.Task[Any]"]:
        """Text changed; schedule a debounced rescan.

        The new version is recorded immediately so in-flight scans of older
        versions are discarded when they finish.

        Returns:
            The debounce task, or ``None`` if the document is already gone
        """
        try:
            self.cache.observe_version(document_key, self.source.get_version(document_key))
        except DocumentUnavailableError:
            self.on_closed(document_key)
            return None
        return self.debouncer.schedule(
            document_key, lambda: self.scan(document_key), change_size=change_size
        )

    def on_closed(self, document_key: str) -> None:
        """Document closed; cancel pending rescans and evict its index."""
        self.debouncer.cancel(document_key)
        self.invalidate(document_key)

    async def on_visible_range_changed(
        self,
        document_key: str,
        ranges: Sequence[LineRange]
    ) -> List[TagOccurrence]:
        """Visible ranges changed; results only while viewport mode is on."""
        if not self.modes.viewport:
            return []
        return await self.query_in_viewport(document_key, ranges)

    async def on_selection_changed(
        self,
        document_key: str,
        line: int
    ) -> Optional[TagOccurrence]:
        """Cursor moved; result only while cursor mode is on."""
        if not self.modes.cursor:
            return None
        return await self.query_at_cursor(document_key, line)

    def statistics(self) -> Dict[str, Any]:
        """Service usage statistics."""
        cache_stats = self.cache.statistics()
        return {
            "scan_count": self.scan_count,
            "cache_size": cache_stats.size,
            "cache_capacity": cache_stats.capacity,
            "cache_hits": cache_stats.hits,
            "cache_misses": cache_stats.misses,
            "cache_hit_rate": cache_stats.hit_rate,
            "evictions": cache_stats.evictions,
            "stale_results_discarded": cache_stats.rejected_commits + self._dropped_results,
            "debounced_rescans": self.debouncer.fired,
            "superseded_rescans": self.debouncer.superseded,
            "modes": self.modes.to_dict(),
            "correlation_id": self.correlation_id,
        }
