"""Stateless query and filter functions over document indexes.

Presentation layers use these to pick which occurrences to annotate: all
ambiguous ones, only those on screen (viewport mode), or only the one on the
cursor line (cursor mode). Which filter applies is the caller's policy.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from xml_sibling_indexer.tokenization import TagOccurrence

from .document import DocumentIndex

# Inclusive (start_line, end_line), zero-based
LineRange = Tuple[int, int]


def all_disambiguated(index: DocumentIndex) -> List[TagOccurrence]:
    """Occurrences whose sibling group has more than one member."""
    return [occ for occ in index.occurrences if occ.needs_disambiguation]


def in_range(
    occurrences: Iterable[TagOccurrence],
    visible_line_ranges: Sequence[LineRange]
) -> List[TagOccurrence]:
    """Occurrences whose line falls inside any of the given inclusive ranges."""
    ranges = [(start, end) for start, end in visible_line_ranges if start <= end]
    if not ranges:
        return []
    return [
        occ for occ in occurrences
        if any(start <= occ.line <= end for start, end in ranges)
    ]


def at_line(occurrences: Iterable[TagOccurrence], line: int) -> Optional[TagOccurrence]:
    """First occurrence needing disambiguation on ``line``, or ``None``."""
    for occ in occurrences:
        if occ.line == line and occ.needs_disambiguation:
            return occ
    return None


def annotation_label(occurrence: TagOccurrence, number_mode: bool = False) -> str:
    """Short label shown next to an occurrence.

    Number mode shows the document-wide sequence number; otherwise the tag
    and its ordinal among its siblings.
    """
    if number_mode:
        return f"#{occurrence.id}"
    return f"[{occurrence.tag} #{occurrence.order_in_group}]"
