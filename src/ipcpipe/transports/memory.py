"""In-memory line channel.

``MemoryChannel`` stands in for an OS pipe between two tasks of the same
event loop. ``maxsize`` bounds the buffer the way a pipe buffer does: a writer
suspends while the channel is full.

Example:
    >>> channel = MemoryChannel()
    >>> await channel.writeline("apple,5,red")
    >>> await channel.close()
    >>> [line async for line in channel]
    ['apple,5,red']
"""

from __future__ import annotations

import asyncio

from ipcpipe.core.errors import StreamClosedError
from ipcpipe.transports.protocol import LineSourceMixin

_EOF = object()


class MemoryChannel(LineSourceMixin):
    """A single-reader, single-writer line channel backed by ``asyncio.Queue``."""

    def __init__(self, maxsize: int = 0, *, name: str = "memory") -> None:
        self.name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._eof = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def writeline(self, line: str) -> None:
        if self._closed:
            raise StreamClosedError(f"Write to closed channel '{self.name}'")
        await self._queue.put(line)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_EOF)

    async def readline(self) -> str | None:
        if self._eof:
            return None
        item = await self._queue.get()
        if item is _EOF:
            self._eof = True
            return None
        return item  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"MemoryChannel(name={self.name!r}, closed={self._closed})"
