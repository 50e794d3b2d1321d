"""Tests for the CLI main module."""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from xml_sibling_indexer.cli.main import (
    CLIConfig,
    DocumentIndexer,
    create_argument_parser,
    find_xml_files,
    format_results,
    main,
    parse_line_range,
)
from xml_sibling_indexer.shared.config import IndexerConfig

LIST_DOCUMENT = "\n".join([
    "<list>",
    "  <item/>",
    "  <item/>",
    "  <title/>",
    "</list>",
])


@pytest.fixture(autouse=True)
def restore_logging():
    """Remove the handler main() installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in [h for h in root.handlers if h.get_name() == "xml_sibling_indexer"]:
        root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def xml_file(tmp_path):
    path = tmp_path / "list.xml"
    path.write_text(LIST_DOCUMENT, encoding="utf-8")
    return path


class TestCLIConfig:
    """Test CLI configuration management."""

    def test_default_config(self):
        config = CLIConfig()
        assert config.indexer_config == IndexerConfig.default()
        assert config.output_format == "json"

    def test_config_from_file_with_preset(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"preset": "responsive", "output_format": "text"}))

        config = CLIConfig.from_file(path)

        assert config.indexer_config.name == "responsive"
        assert config.output_format == "text"

    def test_config_from_file_with_indexer_section(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"indexer": {"cache": {"capacity": 9}}}))
        assert CLIConfig.from_file(path).indexer_config.cache.capacity == 9

    def test_config_from_nonexistent_file(self):
        config = CLIConfig.from_file(Path("nonexistent.json"))
        assert config.output_format == "json"

    def test_invalid_config_file_keeps_defaults(self, tmp_path, capsys):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        config = CLIConfig.from_file(path)

        assert config.indexer_config == IndexerConfig.default()
        assert "Could not load config file" in capsys.readouterr().err


class TestHelpers:
    """Test argument and file helpers."""

    def test_parse_line_range(self):
        assert parse_line_range("3:7") == (2, 6)
        assert parse_line_range("1:1") == (0, 0)

    @pytest.mark.parametrize("value", ["7", "a:b", "0:3", "5:2"])
    def test_parse_line_range_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_line_range(value)

    def test_find_xml_files_single_file(self, xml_file):
        assert list(find_xml_files(xml_file)) == [xml_file]

    def test_find_xml_files_directory(self, tmp_path):
        (tmp_path / "a.xml").write_text("<a/>")
        (tmp_path / "b.svg").write_text("<svg/>")
        (tmp_path / "notes.txt").write_text("<a/>")
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "c.xml").write_text("<c/>")

        flat = [p.name for p in find_xml_files(tmp_path, recursive=False)]
        deep = [p.name for p in find_xml_files(tmp_path, recursive=True)]

        assert sorted(flat) == ["a.xml", "b.svg"]
        assert sorted(deep) == ["a.xml", "b.svg", "c.xml"]


class TestDocumentIndexer:
    """Test indexing files from disk."""

    def test_index_file(self, xml_file):
        indexer = DocumentIndexer(IndexerConfig())
        result = asyncio.run(indexer.index_file(xml_file))

        assert result["success"] is True
        assert result["element_count"] == 4
        assert result["ambiguous_count"] == 2
        assert [occ["label"] for occ in result["occurrences"]] == [
            "[list #1]", "[item #1]", "[item #2]", "[title #1]",
        ]
        # Files are closed again after indexing
        assert indexer.source.keys() == []
        assert len(indexer.service.cache) == 0

    def test_index_file_ambiguous_only(self, xml_file):
        indexer = DocumentIndexer(IndexerConfig())
        result = asyncio.run(indexer.index_file(xml_file, ambiguous_only=True))
        assert [occ["line"] for occ in result["occurrences"]] == [2, 3]

    def test_index_file_cursor(self, xml_file):
        indexer = DocumentIndexer(IndexerConfig())
        result = asyncio.run(indexer.index_file(xml_file, cursor_line=2))

        assert [occ["label"] for occ in result["occurrences"]] == ["[item #2]"]
        assert not indexer.service.modes.cursor

    def test_index_file_line_ranges(self, xml_file):
        indexer = DocumentIndexer(IndexerConfig())
        result = asyncio.run(indexer.index_file(xml_file, line_ranges=[(0, 1)]))
        assert [occ["line"] for occ in result["occurrences"]] == [2]

    def test_index_paths_missing(self, tmp_path):
        indexer = DocumentIndexer(IndexerConfig())
        results = asyncio.run(indexer.index_paths([tmp_path / "missing.xml"]))
        assert results == [{"file": str(tmp_path / "missing.xml"), "success": False,
                            "error": "File not found"}]


class TestFormatResults:
    """Test output formatting."""

    def test_json_format(self):
        results = [{"file": "a.xml", "success": False, "error": "File not found"}]
        assert json.loads(format_results(results, "json")) == results

    def test_text_format(self, xml_file):
        result = asyncio.run(DocumentIndexer(IndexerConfig()).index_file(xml_file))
        output = format_results([result], "text")

        assert "Indexed 4 XML elements in 1/1 files" in output
        assert "[item #2]" in output

    def test_text_format_error(self):
        output = format_results([{"file": "a.xml", "success": False, "error": "boom"}], "text")
        assert "Error: boom" in output

    def test_text_format_empty(self):
        assert format_results([], "text") == "No results to display."


class TestArgumentParser:
    """Test argument parsing."""

    def test_index_command(self):
        args = create_argument_parser().parse_args(
            ["index", "a.xml", "--lines", "1:5", "10:12", "-n", "-f", "text"]
        )
        assert args.command == "index"
        assert args.paths == [Path("a.xml")]
        assert args.lines == [(0, 4), (9, 11)]
        assert args.number_mode is True
        assert args.format == "text"

    def test_cursor_and_lines_exclusive(self):
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(
                ["index", "a.xml", "--lines", "1:5", "--cursor", "3"]
            )

    def test_profile_command(self):
        args = create_argument_parser().parse_args(["profile", "a.xml", "-i", "5"])
        assert args.command == "profile"
        assert args.iterations == 5


class TestMain:
    """Test the CLI entry point."""

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_index_json(self, xml_file, capsys):
        assert main(["index", str(xml_file), "--ambiguous-only"]) == 0

        results = json.loads(capsys.readouterr().out)
        assert results[0]["ambiguous_count"] == 2
        assert len(results[0]["occurrences"]) == 2

    def test_index_number_mode(self, xml_file, capsys):
        assert main(["index", str(xml_file), "--cursor", "3", "--number-mode"]) == 0

        results = json.loads(capsys.readouterr().out)
        assert [occ["label"] for occ in results[0]["occurrences"]] == ["#3"]

    def test_index_to_output_file(self, xml_file, tmp_path, capsys):
        output = tmp_path / "out.txt"
        assert main(["-q", "index", str(xml_file), "-f", "text", "-o", str(output)]) == 0
        assert "[item #1]" in output.read_text()

    def test_index_missing_file(self, tmp_path, capsys):
        assert main(["index", str(tmp_path / "missing.xml")]) == 1

    def test_index_large_file_threshold(self, tmp_path, capsys):
        path = tmp_path / "big.xml"
        path.write_text("<r>" + "<x/>" * 100 + "</r>")

        assert main(["index", str(path), "--large-file-threshold", "100"]) == 0

        result = json.loads(capsys.readouterr().out)[0]
        assert result["chunked"] is True
        assert "WARNING" in {diag["severity"] for diag in result["diagnostics"]}

    def test_index_invalid_overrides(self, xml_file, capsys):
        code = main(["index", str(xml_file), "--large-file-threshold", "100",
                     "--chunk-size", "500"])
        assert code == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_profile(self, xml_file, tmp_path, capsys):
        report_path = tmp_path / "report.json"
        assert main(["profile", str(xml_file), "-i", "1", "-o", str(report_path)]) == 0

        assert "chunked" in capsys.readouterr().out
        assert set(json.loads(report_path.read_text())) == {"full", "chunked"}

    def test_profile_missing_file(self, tmp_path, capsys):
        assert main(["profile", str(tmp_path / "missing.xml")]) == 1

    def test_keyboard_interrupt(self, xml_file, capsys):
        with patch("xml_sibling_indexer.cli.main.cmd_index", side_effect=KeyboardInterrupt):
            assert main(["index", str(xml_file)]) == 130
        assert "interrupted" in capsys.readouterr().err
