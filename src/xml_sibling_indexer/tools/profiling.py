"""Performance profiling tools for the sibling indexer.

Measures wall time, resident memory and throughput of scans on either path
(nesting-aware or chunked) and turns the measurements into tuning
recommendations.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil

from xml_sibling_indexer.shared import IndexerConfig, get_logger
from xml_sibling_indexer.index import InMemoryDocumentSource, IndexerService

SLOW_SCAN_MS = 200.0            # Scans slower than this block an editor noticeably
MEMORY_PER_CHAR_LIMIT = 50      # Bytes of RSS growth per input character


@dataclass
class StagePerformance:
    """Measurements for one stage of a profiled scan."""

    stage_name: str
    start_time: float
    end_time: float
    memory_start: int  # bytes
    memory_end: int  # bytes
    items_processed: int = 0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    @property
    def memory_delta(self) -> int:
        return self.memory_end - self.memory_start


@dataclass
class ScanProfile:
    """Measurements for one profiled scan."""

    profile_id: str
    start_time: float
    end_time: float = 0.0
    input_size: int = 0  # characters
    stages: List[StagePerformance] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    @property
    def chars_per_second(self) -> float:
        duration_s = self.end_time - self.start_time
        if duration_s <= 0:
            return 0.0
        return self.input_size / duration_s


@dataclass
class ProfileReport:
    """Aggregate of several scan profiles."""

    profiles: List[ScanProfile]
    generation_time: float

    @property
    def profile_count(self) -> int:
        return len(self.profiles)

    @property
    def average_duration_ms(self) -> float:
        if not self.profiles:
            return 0.0
        return sum(p.total_duration_ms for p in self.profiles) / len(self.profiles)

    @property
    def max_duration_ms(self) -> float:
        return max((p.total_duration_ms for p in self.profiles), default=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation_time": self.generation_time,
            "summary": {
                "profile_count": self.profile_count,
                "average_duration_ms": self.average_duration_ms,
                "max_duration_ms": self.max_duration_ms,
            },
            "profiles": [
                {
                    "profile_id": profile.profile_id,
                    "input_size": profile.input_size,
                    "total_duration_ms": profile.total_duration_ms,
                    "chars_per_second": profile.chars_per_second,
                    "metadata": profile.metadata,
                    "stages": [
                        {
                            "stage_name": stage.stage_name,
                            "duration_ms": stage.duration_ms,
                            "memory_delta": stage.memory_delta,
                            "items_processed": stage.items_processed,
                        }
                        for stage in profile.stages
                    ],
                }
                for profile in self.profiles
            ],
        }


class ScanProfiler:
    """Collects ScanProfile measurements.

    Examples:
        >>> profiler = ScanProfiler()
        >>> with profiler.profile_scan("doc-v1", input_size=len(text)) as profile:
        ...     with profiler.profile_stage(profile, "tokenize"):
        ...         occurrences = tokenizer.tokenize(text)
        >>> report = profiler.generate_report()
    """

    def __init__(self, enable_memory_tracking: bool = True) -> None:
        """Initialize the profiler.

        Args:
            enable_memory_tracking: Sample process RSS around each stage
        """
        self.enable_memory_tracking = enable_memory_tracking
        self.profiles: List[ScanProfile] = []
        self.logger = get_logger(__name__, None, "scan_profiler")
        self._process = psutil.Process() if enable_memory_tracking else None

    def _rss(self) -> int:
        return self._process.memory_info().rss if self._process is not None else 0

    def profile_scan(self, profile_id: str, input_size: int = 0) -> "_ScanContext":
        """Context manager measuring a whole scan."""
        return _ScanContext(self, profile_id, input_size)

    def profile_stage(self, profile: ScanProfile, stage_name: str) -> "_StageContext":
        """Context manager measuring one stage inside a scan."""
        return _StageContext(self, profile, stage_name)

    def generate_report(self) -> ProfileReport:
        return ProfileReport(profiles=list(self.profiles), generation_time=time.time())

    def save_report(self, report: ProfileReport, output_path: Path) -> None:
        """Write a report as JSON."""
        output_path.write_text(json.dumps(report.to_dict(), indent=2))
        self.logger.info(
            "Saved profiling report",
            extra={"output_path": str(output_path), "profile_count": report.profile_count},
        )

    def get_recommendations(self, report: ProfileReport) -> List[str]:
        """Suggest configuration changes based on measured scans."""
        if not report.profiles:
            return ["No profiling data available for analysis"]

        recommendations = []
        slow_full = [p for p in report.profiles
                     if not p.metadata.get("chunked") and p.total_duration_ms > SLOW_SCAN_MS]
        if slow_full:
            smallest = min(p.input_size for p in slow_full)
            recommendations.append(
                f"Nesting-aware scans of {smallest}+ characters exceed {SLOW_SCAN_MS:.0f} ms; "
                f"consider lowering scan.large_file_threshold below {smallest}"
            )

        slow_chunked = [p for p in report.profiles
                        if p.metadata.get("chunked") and p.total_duration_ms > SLOW_SCAN_MS]
        if slow_chunked:
            recommendations.append(
                "Chunked scans are slow overall; they stay responsive only if "
                "scan.yield_every is small, so consider yield_every=1"
            )

        for profile in report.profiles:
            growth = sum(stage.memory_delta for stage in profile.stages if stage.memory_delta > 0)
            if profile.input_size and growth > profile.input_size * MEMORY_PER_CHAR_LIMIT:
                recommendations.append(
                    f"Scan '{profile.profile_id}' grew memory by {growth} bytes; "
                    "consider reducing cache.capacity"
                )
                break

        if not recommendations:
            recommendations.append("Scan performance is within interactive limits")
        return recommendations

    def clear(self) -> None:
        self.profiles.clear()


class _ScanContext:
    def __init__(self, profiler: ScanProfiler, profile_id: str, input_size: int) -> None:
        self.profiler = profiler
        self.profile = ScanProfile(profile_id, start_time=0.0, input_size=input_size)

    def __enter__(self) -> ScanProfile:
        self.profile.start_time = time.perf_counter()
        return self.profile

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.profile.end_time = time.perf_counter()
        self.profiler.profiles.append(self.profile)
        self.profiler.logger.debug(
            "Profiled scan",
            extra={"profile_id": self.profile.profile_id,
                   "duration_ms": self.profile.total_duration_ms},
        )


class _StageContext:
    def __init__(self, profiler: ScanProfiler, profile: ScanProfile, stage_name: str) -> None:
        self.profiler = profiler
        self.profile = profile
        self.stage = StagePerformance(stage_name, 0.0, 0.0, 0, 0)

    def __enter__(self) -> StagePerformance:
        self.stage.memory_start = self.profiler._rss()
        self.stage.start_time = time.perf_counter()
        return self.stage

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stage.end_time = time.perf_counter()
        self.stage.memory_end = self.profiler._rss()
        self.profile.stages.append(self.stage)


def benchmark_scan_paths(
    text: str,
    iterations: int = 3,
    config: Optional[IndexerConfig] = None
) -> Dict[str, ProfileReport]:
    """Profile the nesting-aware and chunked paths on the same text.

    Each iteration uses a fresh service so the cache never answers.

    Returns:
        Reports keyed by ``"full"`` and ``"chunked"``
    """
    base = config or IndexerConfig()
    path_configs = {
        "full": base.override(scan__enable_chunked_path=False),
        "chunked": base.override(
            scan__large_file_threshold=0,
            scan__chunk_size=min(base.scan.chunk_size, max(len(text), 1)),
        ),
    }

    reports = {}
    for path_name, path_config in path_configs.items():
        profiler = ScanProfiler()
        for iteration in range(iterations):
            source = InMemoryDocumentSource()
            source.open("benchmark", text)
            service = IndexerService(source, path_config)

            with profiler.profile_scan(f"{path_name}_{iteration}", len(text)) as profile:
                with profiler.profile_stage(profile, "scan") as stage:
                    result = asyncio.run(service.scan("benchmark"))
                    stage.items_processed = len(result.occurrences)
                profile.metadata = {
                    "path": path_name,
                    "iteration": iteration,
                    "chunked": bool(result.index and result.index.chunked),
                    "status": result.status.name,
                }
            service.close()
        reports[path_name] = profiler.generate_report()

    return reports
