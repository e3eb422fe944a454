"""Tests for ipcpipe.core.records — the line wire format."""

import pytest

from ipcpipe.core.errors import ErrorCategory, RecordParseError
from ipcpipe.core.records import (
    SAMPLE_RECORDS,
    Record,
    parse_quantity,
    split_fields,
    strip_newline,
)


class TestSplitFields:
    def test_three_fields(self):
        assert split_fields("apple,5,red") == ["apple", "5", "red"]

    def test_extra_fields_kept(self):
        assert split_fields("apple,5,red,extra") == ["apple", "5", "red", "extra"]

    @pytest.mark.parametrize("line", ["", "apple", "apple,5"])
    def test_too_few_fields(self, line):
        assert split_fields(line) is None

    def test_empty_fields_still_count(self):
        assert split_fields(",,") == ["", "", ""]


class TestParseQuantity:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("5", 5), ("0", 0), ("-3", -3), ("+7", 7), (" 12 ", 12), ("007", 7)],
    )
    def test_integers(self, text, expected):
        assert parse_quantity(text) == expected

    @pytest.mark.parametrize("text", ["", "x", "5a", "1.5", "1_000", "1 2", " "])
    def test_not_integers(self, text):
        assert parse_quantity(text) is None


class TestStripNewline:
    def test_lf(self):
        assert strip_newline("apple,5,red\n") == "apple,5,red"

    def test_crlf(self):
        assert strip_newline("apple,5,red\r\n") == "apple,5,red"

    def test_no_terminator(self):
        assert strip_newline("apple,5,red") == "apple,5,red"

    def test_only_one_terminator_removed(self):
        assert strip_newline("a\n\n") == "a\n"


class TestRecord:
    def test_parse_and_format(self):
        record = Record.parse("APPLE,10,red")
        assert record == Record(name="APPLE", quantity=10, attribute="red")
        assert record.format() == "APPLE,10,red"

    def test_parse_uses_first_three_fields(self):
        assert Record.parse("A,1,b,c").attribute == "b"

    def test_describe(self):
        assert Record("APPLE", 10, "red").describe() == "Fruit: APPLE, Count: 10, Color: red"

    def test_parse_bad_quantity(self):
        with pytest.raises(RecordParseError) as exc_info:
            Record.parse("APPLE,ten,red")
        err = exc_info.value
        assert err.category == ErrorCategory.PARSE
        assert err.field_name == "quantity"
        assert err.context.line == "APPLE,ten,red"

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            Record.parse("APPLE,ten,red")

    def test_parse_too_few_fields(self):
        with pytest.raises(RecordParseError, match="Expected 3 fields, got 2"):
            Record.parse("APPLE,10")


def test_sample_records_sum():
    assert len(SAMPLE_RECORDS) == 7
    assert SAMPLE_RECORDS[0] == "apple,5,red"
    assert SAMPLE_RECORDS[-1] == "kiwi,8,green"
    assert sum(Record.parse(r).quantity for r in SAMPLE_RECORDS) == 60
