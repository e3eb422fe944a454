"""Aggregator stage: prints each record and the running total.

Lines with fewer than three fields are dropped without a word. A quantity
that is not an integer is fatal: ``RecordParseError`` propagates and the stage
stops without printing a total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TextIO

from ipcpipe.core.records import Record, split_fields
from ipcpipe.framework.logging import get_logger
from ipcpipe.transports.protocol import LineSource
from ipcpipe.transports.streams import emit

logger = get_logger(__name__)


@dataclass
class AggregateResult:
    """Records accepted by the aggregator, in arrival order, and their total."""

    records: list[Record] = field(default_factory=list)
    total: int = 0
    discarded: int = 0


async def aggregate(source: LineSource, out: TextIO) -> AggregateResult:
    """Fold ``source`` into a total, reporting every step on ``out``."""
    result = AggregateResult()
    emit(out, "Consumer started...")
    emit(out, "Results:")

    async for line in source:
        if split_fields(line) is None:
            result.discarded += 1
            continue

        record = Record.parse(line)
        emit(out, record.describe())
        result.records.append(record)
        result.total += record.quantity

    emit(out, f"Total items processed: {result.total}")
    emit(out, "Consumer finished.")
    logger.debug("consumer.done", records=len(result.records), total=result.total)
    return result
