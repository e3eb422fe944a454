"""Tests for the transformer stage.

Structural defects (fewer than three fields) drop the record with a
diagnostic; numeric defects keep the record with quantity 0.
"""

import io

import pytest

from ipcpipe.stages import Transformed, apply_transform, transform, transform_line
from ipcpipe.transports import MemoryChannel, TextLineSink, TextLineSource


class TestTransformLine:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("apple,5,red", "APPLE,10,red"),
            ("banana,7,yellow", "BANANA,14,yellow"),
            ("kiwi,-2,green", "KIWI,-4,green"),
            ("apple, 5 ,red", "APPLE,10,red"),
            ("apple,5,red,extra", "APPLE,10,red"),
            ("Mixed Case,1,Keep Case", "MIXED CASE,2,Keep Case"),
        ],
    )
    def test_valid_records(self, line, expected):
        assert transform_line(line) == expected

    @pytest.mark.parametrize("line", ["apple,x,red", "apple,,red", "apple,1.5,red"])
    def test_bad_quantity_defaults_to_zero(self, line):
        assert transform_line(line) == "APPLE,0,red"

    @pytest.mark.parametrize("line", ["", "apple", "apple,5"])
    def test_too_few_fields_skipped(self, line):
        assert transform_line(line) is None


class TestApplyTransform:
    def test_reports_defaulted_quantity(self):
        assert apply_transform("apple,x,red") == Transformed("APPLE,0,red", defaulted=True)

    def test_parsed_quantity_not_defaulted(self):
        assert apply_transform("apple,0,red") == Transformed("APPLE,0,red", defaulted=False)

    def test_skip(self):
        assert apply_transform("apple,5") is None


async def _run(lines: list[str]) -> tuple[list[str], str, object]:
    source = MemoryChannel()
    for line in lines:
        await source.writeline(line)
    await source.close()

    sink = MemoryChannel()
    diag = io.StringIO()
    stats = await transform(source, sink, diag)
    return [line async for line in sink], diag.getvalue(), stats


class TestTransform:
    @pytest.mark.asyncio
    async def test_single_record(self):
        out, diag, stats = await _run(["apple,5,red"])

        assert out == ["APPLE,10,red"]
        assert diag.splitlines() == [
            "Transformer started...",
            "Transformed: apple,5,red -> APPLE,10,red",
            "Transformer finished.",
        ]
        assert (stats.read, stats.written, stats.skipped) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_skips_and_continues(self):
        out, diag, stats = await _run(["apple,5", "banana,7,yellow"])

        assert out == ["BANANA,14,yellow"]
        assert "Skipping invalid input: apple,5" in diag.splitlines()
        assert stats.skipped == 1
        assert stats.written == 1

    @pytest.mark.asyncio
    async def test_numeric_default_is_not_a_skip(self):
        out, diag, stats = await _run(["apple,lots,red"])

        assert out == ["APPLE,0,red"]
        assert "Transformed: apple,lots,red -> APPLE,0,red" in diag.splitlines()
        assert stats.defaulted == 1
        assert stats.skipped == 0

    @pytest.mark.asyncio
    async def test_order_preserved(self):
        lines = [f"item{i},{i},c" for i in range(50)]
        out, _, _ = await _run(lines)
        assert out == [f"ITEM{i},{i * 2},c" for i in range(50)]

    @pytest.mark.asyncio
    async def test_closes_sink_on_empty_input(self):
        out, diag, stats = await _run([])
        assert out == []
        assert diag.splitlines() == ["Transformer started...", "Transformer finished."]
        assert stats.read == 0

    @pytest.mark.asyncio
    async def test_over_text_streams(self):
        stdout = io.StringIO()
        diag = io.StringIO()
        await transform(TextLineSource(io.StringIO("apple,5,red\n")), TextLineSink(stdout), diag)
        assert stdout.getvalue() == "APPLE,10,red\n"
