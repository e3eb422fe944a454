"""Tests for the aggregator stage."""

import io
import itertools

import pytest

from ipcpipe.core.errors import RecordParseError
from ipcpipe.stages import aggregate
from ipcpipe.transports import MemoryChannel, TextLineSource


async def _run(lines: list[str]):
    source = MemoryChannel()
    for line in lines:
        await source.writeline(line)
    await source.close()
    out = io.StringIO()
    result = await aggregate(source, out)
    return result, out.getvalue().splitlines()


class TestAggregate:
    @pytest.mark.asyncio
    async def test_two_records(self):
        result, lines = await _run(["APPLE,10,red", "BANANA,14,yellow"])

        assert lines == [
            "Consumer started...",
            "Results:",
            "Fruit: APPLE, Count: 10, Color: red",
            "Fruit: BANANA, Count: 14, Color: yellow",
            "Total items processed: 24",
            "Consumer finished.",
        ]
        assert result.total == 24
        assert [r.name for r in result.records] == ["APPLE", "BANANA"]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        result, lines = await _run([])
        assert result.total == 0
        assert lines[-2:] == ["Total items processed: 0", "Consumer finished."]

    @pytest.mark.asyncio
    async def test_short_lines_discarded_silently(self):
        result, lines = await _run(["APPLE,10", "", "KIWI,16,green"])

        assert result.total == 16
        assert result.discarded == 2
        assert not any("APPLE" in line for line in lines)
        assert len(lines) == 5

    @pytest.mark.asyncio
    async def test_bad_quantity_is_fatal(self):
        source = MemoryChannel()
        for line in ["APPLE,10,red", "BANANA,many,yellow", "KIWI,16,green"]:
            await source.writeline(line)
        await source.close()
        out = io.StringIO()

        with pytest.raises(RecordParseError) as exc_info:
            await aggregate(source, out)

        assert exc_info.value.context.line == "BANANA,many,yellow"
        printed = out.getvalue()
        assert "Fruit: APPLE, Count: 10, Color: red" in printed
        assert "KIWI" not in printed
        assert "Total items processed" not in printed

    @pytest.mark.asyncio
    async def test_total_independent_of_order(self):
        lines = ["A,3,x", "B,-4,y", "C,11,z"]
        totals = set()
        for perm in itertools.permutations(lines):
            result, _ = await _run(list(perm))
            totals.add(result.total)
        assert totals == {10}

    @pytest.mark.asyncio
    async def test_over_text_stream(self):
        out = io.StringIO()
        result = await aggregate(TextLineSource(io.StringIO("APPLE,10,red\n")), out)
        assert result.total == 10
