"""Line transports: the byte-stream source/sink seam between stages.

Implementations:
- ``StreamLineSource`` / ``StreamLineSink``: subprocess pipes (asyncio streams)
- ``TextLineSource`` / ``TextLineSink``: text files such as stdin/stdout
- ``MemoryChannel``: in-process channel between tasks
"""

from ipcpipe.transports.memory import MemoryChannel
from ipcpipe.transports.protocol import LineSink, LineSource
from ipcpipe.transports.streams import (
    StreamLineSink,
    StreamLineSource,
    TextLineSink,
    TextLineSource,
    emit,
)

__all__ = [
    "LineSink",
    "LineSource",
    "MemoryChannel",
    "StreamLineSink",
    "StreamLineSource",
    "TextLineSink",
    "TextLineSource",
    "emit",
]
