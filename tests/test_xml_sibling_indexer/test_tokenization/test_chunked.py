"""Tests for the cooperative chunked scanner."""

import asyncio

import pytest

from xml_sibling_indexer.shared import ScanConfig, ScanMetrics
from xml_sibling_indexer.tokenization import (
    ROOT_ID,
    ChunkedScanner,
    group_siblings,
    scan_chunked,
)


def padded_units(count, unit="<x/>", width=600):
    """Text of ``count`` units, each padded so none straddles a multiple of width."""
    return "".join(unit + " " * (width - len(unit)) for _ in range(count))


class TestChunkedScan:
    """Test chunked scanning results."""

    @pytest.mark.asyncio
    async def test_all_occurrences_top_level(self):
        """Test no parent links are produced on the chunked path."""
        occurrences = await scan_chunked("<a><b/><b/></a>", 100)

        assert [occ.tag for occ in occurrences] == ["a", "b", "b"]
        assert all(occ.parent_id == ROOT_ID for occ in occurrences)

    @pytest.mark.asyncio
    async def test_ids_continue_across_chunks(self):
        text = padded_units(10, width=50)
        occurrences = await scan_chunked(text, 100)

        assert [occ.id for occ in occurrences] == list(range(1, 11))
        assert [occ.offset for occ in occurrences] == [i * 50 for i in range(10)]

    @pytest.mark.asyncio
    async def test_hundred_siblings_grouped_document_wide(self):
        """Test a large document of repeated siblings forms one group."""
        text = padded_units(100)
        assert len(text) == 60_000

        occurrences = group_siblings(await scan_chunked(text, 6_000))

        assert len(occurrences) == 100
        assert [occ.order_in_group for occ in occurrences] == list(range(1, 101))
        assert {occ.group_size for occ in occurrences} == {100}

    @pytest.mark.asyncio
    async def test_straddling_tag_missed(self):
        """Test a tag crossing a chunk boundary is not reported."""
        occurrences = await scan_chunked("<a/><bb/>", 6)
        assert [occ.tag for occ in occurrences] == ["a"]

    @pytest.mark.asyncio
    async def test_closing_tags_skipped(self):
        occurrences = await scan_chunked("<a></a><a></a>", 7)
        assert [occ.tag for occ in occurrences] == ["a", "a"]

    @pytest.mark.asyncio
    async def test_empty_text(self):
        assert await scan_chunked("", 10) == []

    @pytest.mark.asyncio
    async def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            await scan_chunked("<a/>", 0)

    @pytest.mark.asyncio
    async def test_lines_resolved(self):
        occurrences = await scan_chunked("<a/>\n<b/>\n<c/>", 5)
        assert [occ.line for occ in occurrences] == [0, 1, 2]


class TestCooperativeYielding:
    """Test the scanner yields to the event loop."""

    @pytest.mark.asyncio
    async def test_yield_cadence(self):
        scanner = ChunkedScanner(ScanConfig(chunk_size=10, yield_every=2))
        metrics = ScanMetrics()

        await scanner.scan("<a/>" * 25, metrics=metrics)

        assert metrics.chunks_processed == 10
        assert metrics.yields == 5
        assert scanner.last_metrics is metrics
        assert metrics.processing_time_ms >= 0

    @pytest.mark.asyncio
    async def test_other_tasks_progress_during_scan(self):
        """Test a concurrent task runs before the scan finishes."""
        progress = []

        async def ticker():
            for _ in range(3):
                progress.append("tick")
                await asyncio.sleep(0)

        scanner = ChunkedScanner(ScanConfig(chunk_size=10, yield_every=1))
        tick_task = asyncio.ensure_future(ticker())
        occurrences = await scanner.scan(padded_units(50, width=10))
        progress.append("done")
        await tick_task

        assert len(occurrences) == 50
        assert progress.index("tick") < progress.index("done")

    @pytest.mark.asyncio
    async def test_explicit_chunk_size_overrides_config(self):
        scanner = ChunkedScanner(ScanConfig(chunk_size=1_000, yield_every=1))
        metrics = ScanMetrics()
        await scanner.scan("<a/>" * 10, chunk_size=8, metrics=metrics)
        assert metrics.chunks_processed == 5
