"""
Timed pipeline steps.

    with log_step("pipeline.relay", level="debug") as timer:
        count = await relay(source, sink)
        timer.add_metric("lines", count)

    # DEBUG pipeline.relay.start span_id=1c9e44a0
    # DEBUG pipeline.relay.end   span_id=1c9e44a0 elapsed_ms=41.7 lines=7

A step that raises logs ``<event>.error`` with the exception type and message
instead of ``.end`` and re-raises. Cancellation logs nothing.
"""

import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ipcpipe.framework.logging.context import get_context, get_logger, scoped_context


@dataclass
class StepTimer:
    """Elapsed time and metrics for one ``log_step`` block."""

    step: str
    parent_span_id: str | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    error: Exception | None = None
    _started: float = field(default_factory=time.perf_counter, repr=False)
    _finished: float | None = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def elapsed_ms(self) -> float:
        end = self._finished if self._finished is not None else time.perf_counter()
        return (end - self._started) * 1000

    def add_metric(self, key: str, value: Any) -> None:
        self.metrics[key] = value

    def finish(self, error: Exception | None = None) -> None:
        if self._finished is None:
            self._finished = time.perf_counter()
        if error is not None:
            self.error = error

    def fields(self) -> dict[str, Any]:
        """Key/values for the closing log event."""
        out: dict[str, Any] = {"span_id": self.span_id, "elapsed_ms": round(self.elapsed_ms, 2)}
        if self.parent_span_id:
            out["parent_span_id"] = self.parent_span_id
        out.update(self.metrics)
        if self.error is not None:
            out["error_type"] = type(self.error).__name__
            out["error"] = str(self.error)
        return out


@contextmanager
def log_step(event: str, level: str = "info", **metrics: Any) -> Iterator[StepTimer]:
    """Time a block, logging ``<event>.start`` at DEBUG and ``<event>.end`` at ``level``.

    The step name and a fresh span id are pushed into the log context, so
    events logged inside the block carry them and nested steps record their
    parent.
    """
    log = get_logger("ipcpipe.timing")
    parent = get_context().span_id
    timer = StepTimer(event, parent_span_id=parent, metrics=dict(metrics))

    with scoped_context(span_id=timer.span_id, parent_span_id=parent, step=event):
        log.debug(f"{event}.start")
        try:
            yield timer
        except Exception as exc:
            timer.finish(exc)
            log.error(f"{event}.error", **timer.fields())
            raise
        timer.finish()
        getattr(log, level)(f"{event}.end", **timer.fields())
