"""Transformer stage: upper-cases names and doubles quantities.

Per input line:

- fewer than three fields: the line is skipped with a
  ``Skipping invalid input`` diagnostic and nothing goes downstream;
- unparseable quantity: the record still goes downstream with quantity ``0``;
- otherwise ``name,qty,attr`` becomes ``NAME,qty*2,attr``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, TextIO

from ipcpipe.core.records import FIELD_SEPARATOR, parse_quantity, split_fields
from ipcpipe.framework.logging import get_logger
from ipcpipe.transports.protocol import LineSink, LineSource
from ipcpipe.transports.streams import emit

logger = get_logger(__name__)


@dataclass
class TransformStats:
    """Counters for one transformer run."""

    read: int = 0
    written: int = 0
    skipped: int = 0
    defaulted: int = 0


class Transformed(NamedTuple):
    """Output line for one input record; ``defaulted`` if its quantity did not parse."""

    line: str
    defaulted: bool


def apply_transform(line: str) -> Transformed | None:
    """Transform one record line, or return ``None`` when it must be skipped."""
    parts = split_fields(line)
    if parts is None:
        return None

    quantity = parse_quantity(parts[1])
    count = quantity * 2 if quantity is not None else 0
    return Transformed(FIELD_SEPARATOR.join((parts[0].upper(), str(count), parts[2])), quantity is None)


def transform_line(line: str) -> str | None:
    """Output line for ``line`` alone, or ``None`` when it is skipped."""
    outcome = apply_transform(line)
    return outcome.line if outcome is not None else None


async def transform(source: LineSource, sink: LineSink, diag: TextIO) -> TransformStats:
    """Stream ``source`` through ``apply_transform`` into ``sink``.

    Closes ``sink`` once ``source`` reaches end-of-stream.
    """
    stats = TransformStats()
    emit(diag, "Transformer started...")

    async for line in source:
        stats.read += 1
        outcome = apply_transform(line)
        if outcome is None:
            stats.skipped += 1
            emit(diag, f"Skipping invalid input: {line}")
            continue

        if outcome.defaulted:
            stats.defaulted += 1
            logger.info("transformer.quantity_defaulted", line=line)

        await sink.writeline(outcome.line)
        stats.written += 1
        emit(diag, f"Transformed: {line} -> {outcome.line}")

    await sink.close()
    emit(diag, "Transformer finished.")
    logger.debug("transformer.done", read=stats.read, written=stats.written, skipped=stats.skipped)
    return stats
