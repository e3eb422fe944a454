"""Producer stage: emits a fixed sequence of records."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TextIO

from ipcpipe.core.records import SAMPLE_RECORDS
from ipcpipe.framework.logging import get_logger
from ipcpipe.transports.protocol import LineSink
from ipcpipe.transports.streams import emit

logger = get_logger(__name__)


async def produce(
    sink: LineSink,
    diag: TextIO,
    records: Iterable[str] = SAMPLE_RECORDS,
    *,
    delay: float = 0.0,
    label: str = "Generated",
) -> int:
    """Write ``records`` to ``sink`` in order, then close it.

    After each write ``"<label>: <record>"`` goes to ``diag``. ``delay``
    seconds pass between consecutive records, not after the last one.

    Returns the number of records written.
    """
    count = 0
    for record in records:
        if count and delay > 0:
            await asyncio.sleep(delay)
        await sink.writeline(record)
        emit(diag, f"{label}: {record}")
        count += 1

    await sink.close()
    logger.debug("producer.done", records=count)
    return count
