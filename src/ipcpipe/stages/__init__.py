"""Pipeline stages.

Each stage is a coroutine over explicit streams:

- ``produce(sink, diag, records, delay=...)``
- ``transform(source, sink, diag)``
- ``aggregate(source, out)``
"""

from ipcpipe.stages.aggregator import AggregateResult, aggregate
from ipcpipe.stages.producer import produce
from ipcpipe.stages.transformer import Transformed, TransformStats, apply_transform, transform, transform_line

__all__ = [
    "AggregateResult",
    "TransformStats",
    "Transformed",
    "aggregate",
    "apply_transform",
    "produce",
    "transform",
    "transform_line",
]
