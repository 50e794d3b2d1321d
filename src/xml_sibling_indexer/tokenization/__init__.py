"""Tag tokenization and sibling grouping.

Key Components:
    TagTokenizer: Nesting-aware scanner for normal-sized documents
    ChunkedScanner: Cooperative scanner for large documents (no parent links)
    SiblingGrouper: Assigns per-(parent, tag) ordinals and group sizes
    TagOccurrence: One opening or self-closing tag instance
"""

from .chunked import ChunkedScanner, scan_chunked
from .grouping import SiblingGrouper, group_siblings, groups_of
from .tokenizer import (
    ROOT_ID,
    LineIndex,
    TagKind,
    TagOccurrence,
    TagTokenizer,
    tokenize,
)

__all__ = [
    "ROOT_ID",
    "ChunkedScanner",
    "LineIndex",
    "SiblingGrouper",
    "TagKind",
    "TagOccurrence",
    "TagTokenizer",
    "group_siblings",
    "groups_of",
    "scan_chunked",
    "tokenize",
]
