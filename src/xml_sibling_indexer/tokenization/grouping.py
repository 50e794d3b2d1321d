"""Sibling grouping and ordinal assignment.

Groups occurrences by (parent_id, tag) and annotates each with its 1-based
position in the group and the group's total size. Totals need the whole
document, so grouping runs a counting pass before assigning ordinals.
"""

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from xml_sibling_indexer.shared import get_logger

from .tokenizer import TagOccurrence

GroupKey = Tuple[int, str]


class SiblingGrouper:
    """Assign per-group ordinals and sizes to tag occurrences."""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.logger = get_logger(__name__, correlation_id, "sibling_grouper")

    def group(self, occurrences: Iterable[TagOccurrence]) -> List[TagOccurrence]:
        """Annotate occurrences with group ordinal and size.

        Args:
            occurrences: Occurrences in document order

        Returns:
            New occurrences in the same order with ``order_in_group`` and
            ``group_size`` populated
        """
        ordered = list(occurrences)
        totals = Counter(occ.group_key for occ in ordered)
        seen: Dict[GroupKey, int] = {}

        grouped = []
        for occ in ordered:
            key = occ.group_key
            seen[key] = seen.get(key, 0) + 1
            grouped.append(
                replace(occ, order_in_group=seen[key], group_size=totals[key])
            )

        if self.logger.is_enabled_for(logging.DEBUG):
            ambiguous = sum(1 for count in totals.values() if count > 1)
            self.logger.debug(
                "Grouped occurrences",
                extra={"occurrences": len(grouped), "groups": len(totals),
                       "ambiguous_groups": ambiguous},
            )
        return grouped


def group_siblings(occurrences: Iterable[TagOccurrence]) -> List[TagOccurrence]:
    """Group ``occurrences`` with a throwaway SiblingGrouper."""
    return SiblingGrouper().group(occurrences)


def groups_of(occurrences: Iterable[TagOccurrence]) -> Dict[GroupKey, List[TagOccurrence]]:
    """Collect occurrences into their sibling groups, preserving document order."""
    groups: Dict[GroupKey, List[TagOccurrence]] = {}
    for occ in occurrences:
        groups.setdefault(occ.group_key, []).append(occ)
    return groups
