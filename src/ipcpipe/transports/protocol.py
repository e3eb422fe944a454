"""
Line transport protocols.

Stages never touch OS handles directly. They read from a ``LineSource`` and
write to a ``LineSink``, so the same stage code runs over subprocess pipes,
the process's own stdin/stdout, or in-memory channels.

Lines cross the protocol without their terminator. End-of-stream is
``readline()`` returning ``None``; the writer signals it with ``close()``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class LineSource(Protocol):
    """Readable end of a line stream."""

    async def readline(self) -> str | None:
        """Return the next line without terminator, or ``None`` at end-of-stream."""
        ...

    def __aiter__(self) -> AsyncIterator[str]: ...


@runtime_checkable
class LineSink(Protocol):
    """Writable end of a line stream."""

    async def writeline(self, line: str) -> None:
        """Write one line and make it visible to the reader."""
        ...

    async def close(self) -> None:
        """Signal end-of-stream. Closing twice is a no-op."""
        ...


class LineSourceMixin:
    """``async for`` support for classes implementing ``readline``."""

    async def readline(self) -> str | None:  # pragma: no cover - overridden
        raise NotImplementedError

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            line = await self.readline()
            if line is None:
                return
            yield line
