"""
Record wire format.

A record is one newline-terminated text line holding three comma-separated
fields: ``name``, ``quantity`` and ``attribute``. There is no quoting or
escaping, so field values cannot contain commas or newlines. Lines with more
than three fields use the first three.

Examples:
    >>> split_fields("apple,5,red")
    ['apple', '5', 'red']
    >>> split_fields("apple,5")
    >>> parse_quantity(" 12 ")
    12
    >>> parse_quantity("12a") is None
    True
    >>> Record.parse("APPLE,10,red").format()
    'APPLE,10,red'
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ipcpipe.core.errors import RecordParseError

FIELD_SEPARATOR = ","
MIN_FIELDS = 3

# Optional surrounding whitespace, optional sign, ASCII digits only.
_QUANTITY_RE = re.compile(r"\s*[+-]?[0-9]+\s*")

SAMPLE_RECORDS: tuple[str, ...] = (
    "apple,5,red",
    "banana,7,yellow",
    "orange,4,orange",
    "grape,12,purple",
    "strawberry,9,red",
    "blueberry,15,blue",
    "kiwi,8,green",
)


def strip_newline(line: str) -> str:
    """Drop a trailing ``\\n`` or ``\\r\\n`` terminator."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def split_fields(line: str) -> list[str] | None:
    """Split a line into its fields, or ``None`` if it has fewer than three."""
    parts = line.split(FIELD_SEPARATOR)
    if len(parts) < MIN_FIELDS:
        return None
    return parts


def parse_quantity(text: str) -> int | None:
    """Parse a quantity field leniently, returning ``None`` when it is not an integer."""
    if _QUANTITY_RE.fullmatch(text) is None:
        return None
    return int(text)


@dataclass(frozen=True)
class Record:
    """A parsed record."""

    name: str
    quantity: int
    attribute: str

    @classmethod
    def parse(cls, line: str) -> Record:
        """
        Parse a line strictly.

        Raises:
            RecordParseError: fewer than three fields, or a quantity that is
                not an integer.
        """
        parts = split_fields(line)
        if parts is None:
            raise RecordParseError(
                f"Expected {MIN_FIELDS} fields, got {len(line.split(FIELD_SEPARATOR))}",
                line=line,
            )
        quantity = parse_quantity(parts[1])
        if quantity is None:
            raise RecordParseError(
                f"Invalid quantity: {parts[1]!r}",
                line=line,
                field_name="quantity",
                value=parts[1],
            )
        return cls(name=parts[0], quantity=quantity, attribute=parts[2])

    def format(self) -> str:
        """Render the record as a wire line (without terminator)."""
        return FIELD_SEPARATOR.join((self.name, str(self.quantity), self.attribute))

    def describe(self) -> str:
        """Human-readable rendering used by the consumer."""
        return f"Fruit: {self.name}, Count: {self.quantity}, Color: {self.attribute}"


__all__ = [
    "FIELD_SEPARATOR",
    "MIN_FIELDS",
    "SAMPLE_RECORDS",
    "Record",
    "parse_quantity",
    "split_fields",
    "strip_newline",
]
