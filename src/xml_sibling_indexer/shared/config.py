"""Configuration classes for the sibling indexer.

This module provides configuration objects for scanning, caching and
debouncing, plus the immutable IndexerConfig that bundles them.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .logging import VALID_LEVELS

DEFAULT_LARGE_FILE_THRESHOLD = 50_000
DEFAULT_CHUNK_SIZE = 10_000
DEFAULT_CACHE_CAPACITY = 5

_COMPONENTS = ("scan", "cache", "debounce")


@dataclass
class ScanConfig:
    """Configuration for tokenization path selection and chunking."""

    large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    yield_every: int = 2           # Chunks processed between cooperative yields
    enable_chunked_path: bool = True

    def __post_init__(self) -> None:
        """Validate scan configuration."""
        if self.large_file_threshold < 0:
            raise ValueError("large_file_threshold must be >= 0")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if self.yield_every <= 0:
            raise ValueError("yield_every must be > 0")


@dataclass
class CacheConfig:
    """Configuration for the document index cache."""

    capacity: int = DEFAULT_CACHE_CAPACITY

    def __post_init__(self) -> None:
        """Validate cache configuration."""
        if self.capacity <= 0:
            raise ValueError("capacity must be > 0")


@dataclass
class DebounceConfig:
    """Configuration for coalescing edit-driven rescans."""

    base_delay_ms: float = 500.0
    large_change_threshold: int = 1_000
    max_delay_ms: float = 2_000.0

    def __post_init__(self) -> None:
        """Validate debounce configuration."""
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.large_change_threshold <= 0:
            raise ValueError("large_change_threshold must be > 0")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")

    def delay_for(self, change_size: int) -> float:
        """Quiet period in seconds for an edit of ``change_size`` characters.

        Small edits wait the base delay; larger edits wait proportionally
        longer, capped at ``max_delay_ms``.
        """
        delay_ms = self.base_delay_ms
        if change_size > self.large_change_threshold:
            delay_ms *= change_size / self.large_change_threshold
        return min(delay_ms, self.max_delay_ms) / 1000.0


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class IndexerConfig:
    """Complete configuration for an IndexerService.

    Immutable so one instance can be shared by several services; use
    ``override`` to derive variants.
    """

    scan: ScanConfig = field(default_factory=ScanConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    debounce: DebounceConfig = field(default_factory=DebounceConfig)

    languages: Tuple[str, ...] = ("xml",)
    logging_level: str = "INFO"
    correlation_id: Optional[str] = None

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete indexer configuration."""
        try:
            self.scan.__post_init__()
            self.cache.__post_init__()
            self.debounce.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        if self.logging_level not in VALID_LEVELS:
            raise ConfigValidationError(
                f"logging_level must be one of {list(VALID_LEVELS)}",
                field_name="logging_level",
            )
        if isinstance(self.languages, str):
            raise ConfigValidationError(
                "languages must be a sequence of language ids, not a string",
                field_name="languages",
                suggestions=[f"languages=({self.languages!r},)"],
            )
        if not self.languages:
            raise ConfigValidationError(
                "languages must name at least one language id",
                field_name="languages",
            )

        if (self.scan.enable_chunked_path
                and self.scan.chunk_size > self.scan.large_file_threshold > 0):
            raise ConfigValidationError(
                "chunk_size exceeds large_file_threshold; large documents would "
                "be scanned as a single chunk",
                field_name="scan.chunk_size",
                suggestions=["Reduce scan.chunk_size",
                             "Increase scan.large_file_threshold"],
            )

    def supports_language(self, language_id: Optional[str]) -> bool:
        """Check whether documents in ``language_id`` should be indexed."""
        return language_id is not None and language_id in self.languages

    def override(self, **kwargs: Any) -> "IndexerConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Field overrides; nested fields use ``component__field``

        Returns:
            New IndexerConfig instance with overrides applied

        Example:
            >>> config = IndexerConfig()
            >>> config.override(scan__chunk_size=4096, cache__capacity=10).cache.capacity
            10
        """
        nested: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                    )
                nested.setdefault(component, {})[field_name] = value
            else:
                top_level[key] = value

        new_fields: Dict[str, Any] = dict(top_level)
        for component, overrides in nested.items():
            try:
                new_fields[component] = replace(getattr(self, component), **overrides)
            except (TypeError, ValueError) as e:
                raise ConfigValidationError(str(e), field_name=component) from e

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _to_plain(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {name: _to_plain(getattr(obj, name))
                        for name in obj.__dataclass_fields__}
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_to_plain(item) for item in obj]
            return obj

        result = _to_plain(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexerConfig":
        """Create configuration from dictionary.

        Unknown keys are ignored so configuration files written by newer
        versions still load.
        """
        component_types = {"scan": ScanConfig, "cache": CacheConfig,
                           "debounce": DebounceConfig}
        values: Dict[str, Any] = {}
        try:
            for name, component_type in component_types.items():
                if name in data:
                    known = {key: value for key, value in data[name].items()
                             if key in component_type.__dataclass_fields__}
                    values[name] = component_type(**known)
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        for name in ("logging_level", "correlation_id", "name", "description"):
            if name in data:
                values[name] = data[name]
        if "languages" in data:
            values["languages"] = tuple(data["languages"])

        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "IndexerConfig":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def default(cls) -> "IndexerConfig":
        """Create the default configuration."""
        return cls(name="default")

    @classmethod
    def large_documents(cls) -> "IndexerConfig":
        """Create configuration preset for workspaces with very large documents."""
        return cls(
            scan=ScanConfig(chunk_size=25_000, yield_every=1),
            cache=CacheConfig(capacity=3),
            debounce=DebounceConfig(base_delay_ms=1_000.0, max_delay_ms=4_000.0),
            name="large_documents",
            description=(
                "Smaller cache and longer debounce to bound memory and rescans "
                "for very large documents"
            ),
        )

    @classmethod
    def responsive(cls) -> "IndexerConfig":
        """Create configuration preset favouring quick feedback while typing."""
        return cls(
            scan=ScanConfig(chunk_size=5_000, yield_every=1),
            cache=CacheConfig(capacity=10),
            debounce=DebounceConfig(base_delay_ms=150.0, max_delay_ms=1_000.0),
            name="responsive",
            description="Short debounce and frequent yields for interactive editing",
        )
