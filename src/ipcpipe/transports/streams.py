"""Line transports over OS streams.

Two families:

- ``StreamLineSource`` / ``StreamLineSink`` wrap the asyncio streams of a
  subprocess (``Process.stdout`` / ``Process.stdin``). Bytes on the wire are
  encoded text, one record per ``\\n``-terminated line.
- ``TextLineSource`` / ``TextLineSink`` wrap ordinary text files such as
  ``sys.stdin`` and ``sys.stdout``. Blocking reads run in a worker thread so
  the event loop stays free.

Every write is flushed (or drained) before it returns, so a line is visible to
the next stage as soon as it is written. A reader that went away turns into
``StreamClosedError``.
"""

from __future__ import annotations

import asyncio
from typing import TextIO

from ipcpipe.core.errors import StreamClosedError
from ipcpipe.core.records import strip_newline
from ipcpipe.transports.protocol import LineSourceMixin

_PIPE_ERRORS = (BrokenPipeError, ConnectionResetError)


def emit(stream: TextIO, text: str) -> None:
    """Write one diagnostic or report line and flush it."""
    try:
        stream.write(text + "\n")
        stream.flush()
    except _PIPE_ERRORS as exc:
        raise StreamClosedError("Output stream closed", cause=exc) from exc


# ---------------------------------------------------------------------------
# asyncio streams (subprocess pipes)
# ---------------------------------------------------------------------------


class StreamLineSource(LineSourceMixin):
    """Reads lines from an ``asyncio.StreamReader``."""

    def __init__(self, reader: asyncio.StreamReader, *, encoding: str = "utf-8", name: str = "pipe") -> None:
        self._reader = reader
        self._encoding = encoding
        self.name = name

    async def readline(self) -> str | None:
        try:
            data = await self._reader.readline()
        except _PIPE_ERRORS as exc:
            raise StreamClosedError(f"Read from '{self.name}' failed", cause=exc) from exc
        if not data:
            return None
        return strip_newline(data.decode(self._encoding, errors="replace"))


class StreamLineSink:
    """Writes lines to an ``asyncio.StreamWriter``."""

    def __init__(self, writer: asyncio.StreamWriter, *, encoding: str = "utf-8", name: str = "pipe") -> None:
        self._writer = writer
        self._encoding = encoding
        self._closed = False
        self.name = name

    @property
    def closed(self) -> bool:
        return self._closed

    async def writeline(self, line: str) -> None:
        if self._closed:
            raise StreamClosedError(f"Write to closed stream '{self.name}'")
        try:
            self._writer.write((line + "\n").encode(self._encoding))
            await self._writer.drain()
        except _PIPE_ERRORS as exc:
            raise StreamClosedError(f"Write to '{self.name}' failed", cause=exc) from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except _PIPE_ERRORS as exc:
            raise StreamClosedError(f"Closing '{self.name}' failed", cause=exc) from exc


# ---------------------------------------------------------------------------
# Text files (stdin / stdout of the current process)
# ---------------------------------------------------------------------------


class TextLineSource(LineSourceMixin):
    """Reads lines from a blocking text stream in a worker thread."""

    def __init__(self, stream: TextIO, *, name: str = "stdin") -> None:
        self._stream = stream
        self.name = name

    async def readline(self) -> str | None:
        line = await asyncio.to_thread(self._stream.readline)
        if not line:
            return None
        return strip_newline(line)


class TextLineSink:
    """Writes lines to a text stream, flushing after each line."""

    def __init__(self, stream: TextIO, *, close_stream: bool = False, name: str = "stdout") -> None:
        self._stream = stream
        self._close_stream = close_stream
        self._closed = False
        self.name = name

    @property
    def closed(self) -> bool:
        return self._closed

    async def writeline(self, line: str) -> None:
        if self._closed:
            raise StreamClosedError(f"Write to closed stream '{self.name}'")
        emit(self._stream, line)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.flush()
            if self._close_stream:
                self._stream.close()
        except _PIPE_ERRORS as exc:
            raise StreamClosedError(f"Closing '{self.name}' failed", cause=exc) from exc
