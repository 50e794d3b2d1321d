"""Developer tools for the sibling indexer.

Provides scan profiling with memory tracking and path benchmarking.
"""

from .profiling import ProfileReport, ScanProfile, ScanProfiler, benchmark_scan_paths

__all__ = [
    "ProfileReport",
    "ScanProfile",
    "ScanProfiler",
    "benchmark_scan_paths",
]
