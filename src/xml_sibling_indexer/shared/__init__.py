"""Shared utilities for sibling indexing.

This module provides shared data structures, configuration objects, result types,
and logging helpers used across the tokenization and index layers.
"""

from .result import (
    CacheStatistics,
    DiagnosticEntry,
    DiagnosticSeverity,
    ScanMetrics,
)
from .config import (
    CacheConfig,
    ConfigError,
    ConfigValidationError,
    DebounceConfig,
    IndexerConfig,
    ScanConfig,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "CacheStatistics",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "ScanMetrics",
    "CacheConfig",
    "ConfigError",
    "ConfigValidationError",
    "DebounceConfig",
    "IndexerConfig",
    "ScanConfig",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
]
