"""Tag-shaped substring tokenizer with nesting-derived parent links.

This module implements a best-effort tokenizer that scans markup text for
opening, closing and self-closing tags and records every opening or
self-closing tag as a TagOccurrence. It is not an XML parser: it never
rejects input, and tag-shaped text inside comments or CDATA bodies is
reported like any other tag.
"""

import bisect
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterator, List, Optional, Tuple

from xml_sibling_indexer.shared import CorrelationLogger, ScanMetrics, get_logger

# Parent id of top-level occurrences; real ids start at 1
ROOT_ID = 0

TAG_NAME_CHARS = r"[A-Za-z0-9_:.\-]+"

# Group 1: closing slash, group 2: name, group 3: self-closing slash.
# Attribute text may not contain '<' or '>', so a stray '<' in text content
# restarts matching at the next candidate.
TAG_PATTERN = re.compile(
    r"<(/)?(" + TAG_NAME_CHARS + r")(?:\s[^<>]*?)?(/)?>"
)

PositionLookup = Callable[[int], int]

logger = get_logger(__name__, component="tag_tokenizer")


class TagKind(Enum):
    """Kinds of tag that produce occurrences."""

    OPEN = auto()           # <tag ...>
    SELF_CLOSING = auto()   # <tag .../>


@dataclass(frozen=True)
class TagOccurrence:
    """One observed opening or self-closing tag instance.

    Grouping fields are zero until the occurrence has passed through the
    SiblingGrouper.
    """

    id: int
    tag: str
    offset: int
    line: int
    parent_id: int = ROOT_ID
    kind: TagKind = TagKind.OPEN
    order_in_group: int = 0
    group_size: int = 0

    @property
    def group_key(self) -> Tuple[int, str]:
        """Key shared by all siblings with the same parent and tag name."""
        return (self.parent_id, self.tag)

    @property
    def needs_disambiguation(self) -> bool:
        """True when other siblings share this occurrence's tag name."""
        return self.group_size > 1

    @property
    def is_top_level(self) -> bool:
        return self.parent_id == ROOT_ID


class LineIndex:
    """Offset to zero-based line lookup over precomputed line starts."""

    def __init__(self, text: str) -> None:
        self._line_starts = [0]
        self._line_starts.extend(
            match.end() for match in re.finditer(r"\n", text)
        )

    def line_at(self, offset: int) -> int:
        """Line containing ``offset``; offsets past the end map to the last line."""
        if offset <= 0:
            return 0
        return bisect.bisect_right(self._line_starts, offset) - 1


@dataclass
class RawTag:
    """A regex match classified as an opening, closing or self-closing tag."""

    name: str
    offset: int
    closing: bool
    self_closing: bool


def iter_raw_tags(text: str, start: int = 0, end: Optional[int] = None) -> Iterator[RawTag]:
    """Yield tag-shaped substrings of ``text[start:end]`` in document order."""
    pattern_iter = (
        TAG_PATTERN.finditer(text, start) if end is None
        else TAG_PATTERN.finditer(text, start, end)
    )
    for match in pattern_iter:
        yield RawTag(
            name=match.group(2),
            offset=match.start(),
            closing=match.group(1) is not None,
            self_closing=match.group(3) is not None,
        )


class TagTokenizer:
    """Nesting-aware tokenizer for normal-sized documents.

    Runs to completion without suspension. Malformed markup degrades the
    result instead of raising: close tags with nothing open are ignored and
    close tags that do not match the innermost open tag still pop it.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the tokenizer.

        Args:
            correlation_id: Optional correlation ID of the owning indexer
        """
        self.correlation_id = correlation_id
        self.logger = logger.with_correlation(correlation_id)
        self.last_metrics = ScanMetrics()

    def tokenize(
        self,
        text: str,
        position_at: Optional[PositionLookup] = None,
        metrics: Optional[ScanMetrics] = None
    ) -> List[TagOccurrence]:
        """Convert text into ordered tag occurrences with parent links.

        Args:
            text: Document text
            position_at: Optional collaborator lookup from offset to line;
                failures fall back to counting newlines
            metrics: Optional metrics object to fill in

        Returns:
            Occurrences in document order, ids starting at 1
        """
        if metrics is None:
            metrics = ScanMetrics()
        metrics.characters_processed = len(text)
        resolve_line = LineResolver(text, position_at, metrics, self.logger)

        occurrences: List[TagOccurrence] = []
        stack: List[Tuple[int, str]] = []
        next_id = 1

        for raw in iter_raw_tags(text):
            if raw.closing:
                if not stack:
                    metrics.unmatched_closes += 1
                    continue
                open_id, open_tag = stack.pop()
                if open_tag != raw.name:
                    metrics.mismatched_closes += 1
                    self.logger.debug(
                        "Close tag does not match innermost open tag",
                        extra={"expected": open_tag, "found": raw.name,
                               "offset": raw.offset, "open_id": open_id},
                    )
                continue

            parent_id = stack[-1][0] if stack else ROOT_ID
            occurrence = TagOccurrence(
                id=next_id,
                tag=raw.name,
                offset=raw.offset,
                line=resolve_line(raw.offset),
                parent_id=parent_id,
                kind=TagKind.SELF_CLOSING if raw.self_closing else TagKind.OPEN,
            )
            occurrences.append(occurrence)
            if not raw.self_closing:
                stack.append((next_id, raw.name))
            next_id += 1

        metrics.occurrences_found = len(occurrences)
        self.last_metrics = metrics

        if stack:
            self.logger.debug(
                "Tags left open at end of document",
                extra={"open_count": len(stack)},
            )
        return occurrences


class LineResolver:
    """Resolve offsets to lines, preferring the collaborator's lookup."""

    def __init__(
        self,
        text: str,
        position_at: Optional[PositionLookup],
        metrics: ScanMetrics,
        log: CorrelationLogger,
    ) -> None:
        self._position_at = position_at
        self._metrics = metrics
        self._log = log
        self._line_index: Optional[LineIndex] = None
        self._text = text

    def _fallback(self, offset: int) -> int:
        if self._line_index is None:
            self._line_index = LineIndex(self._text)
        return self._line_index.line_at(offset)

    def __call__(self, offset: int) -> int:
        if self._position_at is None:
            return self._fallback(offset)
        try:
            return int(self._position_at(offset))
        except Exception as e:  # collaborator errors must not abort the scan
            self._metrics.position_fallbacks += 1
            self._log.debug(
                "Position lookup failed, using line-start fallback",
                extra={"offset": offset, "error": str(e)},
            )
            return self._fallback(offset)


def tokenize(text: str, position_at: Optional[PositionLookup] = None) -> List[TagOccurrence]:
    """Tokenize ``text`` with a throwaway TagTokenizer."""
    return TagTokenizer().tokenize(text, position_at)
