"""Main CLI entry point for the xml-sibling-indexer command-line tool.

Indexes XML files from disk and reports which sibling elements are ambiguous,
optionally restricted to line ranges or a single cursor line, and profiles
the scan paths on a given file.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from xml_sibling_indexer import __version__
from xml_sibling_indexer.index import (
    DisplayMode,
    InMemoryDocumentSource,
    IndexerService,
    annotation_label,
)
from xml_sibling_indexer.shared.config import ConfigError, IndexerConfig
from xml_sibling_indexer.shared.logging import configure_logging, get_logger
from xml_sibling_indexer.tokenization import TagOccurrence

XML_SUFFIXES = {".xml", ".xhtml", ".svg", ".xsd", ".xsl", ".xslt"}

PRESETS = {
    "default": IndexerConfig.default,
    "large_documents": IndexerConfig.large_documents,
    "responsive": IndexerConfig.responsive,
}


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self) -> None:
        self.indexer_config = IndexerConfig.default()
        self.output_format = "json"

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        The file may name a ``preset`` and/or carry an ``indexer`` object in
        IndexerConfig.to_dict() form; the object wins over the preset.
        """
        config = cls()
        if not config_path.exists():
            return config
        try:
            data = json.loads(config_path.read_text())
            if data.get("preset") in PRESETS:
                config.indexer_config = PRESETS[data["preset"]]()
            if "indexer" in data:
                config.indexer_config = IndexerConfig.from_dict(data["indexer"])
            config.output_format = data.get("output_format", config.output_format)
        except (OSError, ValueError, ConfigError) as e:
            print(f"Warning: Could not load config file: {e}", file=sys.stderr)
        return config


def parse_line_range(value: str) -> Tuple[int, int]:
    """Parse ``START:END`` (1-based, inclusive) into a zero-based range."""
    try:
        start_text, end_text = value.split(":", 1)
        start, end = int(start_text), int(end_text)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid line range {value!r}; expected START:END"
        ) from None
    if start < 1 or end < start:
        raise argparse.ArgumentTypeError(
            f"invalid line range {value!r}; lines start at 1 and END >= START"
        )
    return (start - 1, end - 1)


def find_xml_files(path: Path, recursive: bool = True) -> Iterator[Path]:
    """Find XML-like files in path."""
    if path.is_file():
        yield path
    elif path.is_dir():
        candidates = path.rglob("*") if recursive else path.glob("*")
        for candidate in sorted(candidates):
            if candidate.is_file() and candidate.suffix.lower() in XML_SUFFIXES:
                yield candidate


def occurrence_to_dict(occ: TagOccurrence, number_mode: bool = False) -> Dict[str, Any]:
    return {
        "id": occ.id,
        "tag": occ.tag,
        "line": occ.line + 1,
        "offset": occ.offset,
        "parent_id": occ.parent_id,
        "order_in_group": occ.order_in_group,
        "group_size": occ.group_size,
        "label": annotation_label(occ, number_mode),
    }


class DocumentIndexer:
    """Runs an IndexerService over files from disk."""

    def __init__(self, config: IndexerConfig) -> None:
        self.config = config
        self.source = InMemoryDocumentSource()
        self.service = IndexerService(self.source, config)
        self.logger = get_logger(__name__, config.correlation_id, "cli_indexer")

    async def index_file(
        self,
        file_path: Path,
        ambiguous_only: bool = False,
        line_ranges: Sequence[Tuple[int, int]] = (),
        cursor_line: Optional[int] = None
    ) -> Dict[str, Any]:
        """Index one file and describe the result as a dictionary."""
        try:
            key = self.source.open_file(file_path, language_id="xml")
        except OSError as e:
            self.logger.warning("Could not read file", extra={"file": str(file_path)})
            return {"file": str(file_path), "success": False, "error": str(e)}

        try:
            result = await self.service.scan(key)
            if not result.success:
                return {
                    "file": str(file_path),
                    "success": False,
                    "status": result.status.name,
                    "error": "; ".join(diag.message for diag in result.diagnostics),
                }

            modes = self.service.modes
            number_mode = modes.number
            if cursor_line is not None:
                modes.set(DisplayMode.CURSOR, True)
                occ = await self.service.on_selection_changed(key, cursor_line)
                selected = [occ] if occ is not None else []
            elif line_ranges:
                modes.set(DisplayMode.VIEWPORT, True)
                selected = await self.service.on_visible_range_changed(key, line_ranges)
            elif ambiguous_only:
                selected = await self.service.query_all(key)
            else:
                selected = list(result.occurrences)
            modes.set(DisplayMode.CURSOR, False)
            modes.set(DisplayMode.VIEWPORT, False)

            index = result.index
            return {
                "file": str(file_path),
                "success": True,
                "status": result.status.name,
                "element_count": len(index),
                "ambiguous_count": index.ambiguous_count,
                "chunked": index.chunked,
                "processing_time_ms": index.metrics.processing_time_ms,
                "diagnostics": [
                    {"severity": diag.severity.name, "message": diag.message}
                    for diag in result.diagnostics
                ],
                "occurrences": [
                    occurrence_to_dict(occ, number_mode) for occ in selected
                ],
            }
        finally:
            self.service.on_closed(key)
            self.source.close(key)

    async def index_paths(
        self,
        paths: List[Path],
        recursive: bool = True,
        **options: Any
    ) -> List[Dict[str, Any]]:
        results = []
        for path in paths:
            if not path.exists():
                results.append({"file": str(path), "success": False,
                                "error": "File not found"})
                continue
            for file_path in find_xml_files(path, recursive):
                results.append(await self.index_file(file_path, **options))
        return results


def format_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format indexing results for output."""
    if format_type != "text":
        return json.dumps(results, indent=2)

    if not results:
        return "No results to display."

    lines = []
    indexed = sum(1 for r in results if r.get("success", False))
    total_elements = sum(r.get("element_count", 0) for r in results)
    lines.append(f"Indexed {total_elements} XML elements in {indexed}/{len(results)} files")
    lines.append("-" * 60)

    for result in results:
        status = "✓" if result.get("success", False) else "✗"
        lines.append(f"{status} {result['file']}")
        if not result.get("success", False):
            lines.append(f"   Error: {result.get('error', 'unknown error')}")
            lines.append("")
            continue

        lines.append(
            f"   Elements: {result['element_count']}, "
            f"Ambiguous: {result['ambiguous_count']}, "
            f"Time: {result['processing_time_ms']:.1f}ms"
            + (" (chunked)" if result["chunked"] else "")
        )
        for occ in result["occurrences"]:
            lines.append(f"   line {occ['line']:>5}  <{occ['tag']}>  {occ['label']}")
        lines.append("")

    return "\n".join(lines)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="xml-sibling-indexer",
        description="Number repeated sibling elements in XML documents"
    )
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    index_parser = subparsers.add_parser("index", help="Index XML files")
    index_parser.add_argument("paths", nargs="+", type=Path,
                              help="XML files or directories to index")
    index_parser.add_argument("--recursive", "-r", action="store_true",
                              help="Recursively process directories")
    index_parser.add_argument("--ambiguous-only", "-a", action="store_true",
                              help="Only report elements that need disambiguation")
    scope = index_parser.add_mutually_exclusive_group()
    scope.add_argument("--lines", type=parse_line_range, nargs="+", metavar="START:END",
                       help="Only report ambiguous elements on these lines (viewport mode)")
    scope.add_argument("--cursor", type=int, metavar="LINE",
                       help="Only report the ambiguous element on this line (cursor mode)")
    index_parser.add_argument("--number-mode", "-n", action="store_true",
                              help="Label elements by sequence number")
    index_parser.add_argument("--format", "-f", choices=["json", "text"], default=None,
                              help="Output format (default: json)")
    index_parser.add_argument("--output", "-o", type=Path,
                              help="Output file (default: stdout)")
    index_parser.add_argument("--config", "-c", type=Path,
                              help="Configuration file path")
    index_parser.add_argument("--preset", choices=sorted(PRESETS),
                              help="Indexer configuration preset")
    index_parser.add_argument("--large-file-threshold", type=int,
                              help="Characters above which the chunked path is used")
    index_parser.add_argument("--chunk-size", type=int,
                              help="Chunk size for the chunked path")

    profile_parser = subparsers.add_parser("profile", help="Profile both scan paths on a file")
    profile_parser.add_argument("path", type=Path, help="XML file to profile")
    profile_parser.add_argument("--iterations", "-i", type=int, default=3,
                                help="Scans per path (default: 3)")
    profile_parser.add_argument("--output", "-o", type=Path,
                                help="Write the full JSON report here")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet output")

    return parser


def build_indexer_config(args: argparse.Namespace) -> CLIConfig:
    """Resolve config file, preset and command-line overrides."""
    config = CLIConfig.from_file(args.config) if args.config else CLIConfig()
    if args.preset:
        config.indexer_config = PRESETS[args.preset]()

    overrides: Dict[str, Any] = {}
    if args.large_file_threshold is not None:
        overrides["scan__large_file_threshold"] = args.large_file_threshold
    if args.chunk_size is not None:
        overrides["scan__chunk_size"] = args.chunk_size
    elif args.large_file_threshold is not None:
        current = config.indexer_config.scan.chunk_size
        if 0 < args.large_file_threshold < current:
            overrides["scan__chunk_size"] = args.large_file_threshold
    if overrides:
        config.indexer_config = config.indexer_config.override(**overrides)

    if args.format:
        config.output_format = args.format
    return config


def cmd_index(args: argparse.Namespace) -> int:
    """Handle index command."""
    try:
        config = build_indexer_config(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    indexer = DocumentIndexer(config.indexer_config)
    if args.number_mode:
        indexer.service.modes.set(DisplayMode.NUMBER, True)

    options: Dict[str, Any] = {"ambiguous_only": args.ambiguous_only}
    if args.lines:
        options["line_ranges"] = args.lines
    if args.cursor is not None:
        options["cursor_line"] = args.cursor - 1

    try:
        results = asyncio.run(indexer.index_paths(args.paths, args.recursive, **options))
    finally:
        indexer.service.close()

    formatted_output = format_results(results, config.output_format)
    if args.output:
        try:
            args.output.write_text(formatted_output)
            print(f"Results written to {args.output}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    else:
        print(formatted_output)

    if not results:
        return 1
    return 0 if all(r.get("success", False) for r in results) else 1


def cmd_profile(args: argparse.Namespace) -> int:
    """Handle profile command."""
    from xml_sibling_indexer.tools.profiling import ScanProfiler, benchmark_scan_paths

    if not args.path.is_file():
        print(f"File not found: {args.path}", file=sys.stderr)
        return 1
    if args.iterations <= 0:
        print("--iterations must be > 0", file=sys.stderr)
        return 1

    text = args.path.read_text(encoding="utf-8", errors="replace")
    reports = benchmark_scan_paths(text, iterations=args.iterations)
    profiler = ScanProfiler(enable_memory_tracking=False)

    for path_name, report in reports.items():
        print(f"{path_name:>8}: avg {report.average_duration_ms:.2f}ms, "
              f"max {report.max_duration_ms:.2f}ms over {report.profile_count} scans")
        for recommendation in profiler.get_recommendations(report):
            print(f"          - {recommendation}")

    if args.output:
        combined = {name: report.to_dict() for name, report in reports.items()}
        args.output.write_text(json.dumps(combined, indent=2))
        print(f"Report written to {args.output}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging("WARNING")

    try:
        if args.command == "index":
            return cmd_index(args)
        if args.command == "profile":
            return cmd_profile(args)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
