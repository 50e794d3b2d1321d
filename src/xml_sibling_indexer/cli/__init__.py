"""Command-line interface for the XML sibling indexer.

Indexes XML files from disk, reports ambiguous sibling elements and profiles
the two scan paths.
"""

from .main import main

__all__ = ["main"]
