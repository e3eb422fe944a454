"""
Run context carried by every log event.

One ``ContextVar`` holds an immutable ``LogContext``. asyncio copies the
current context into each task it creates, so the relay task can rebind
``stage`` without touching the generation loop's value.

Child stages pick up the orchestrator's run through ``IPCPIPE_RUN_ID`` and
``IPCPIPE_STAGE``, which ``StageLauncher`` puts in their environment; see
``context_from_env``.
"""

import os
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, fields, replace
from typing import Any

import structlog

RUN_ID_ENV = "IPCPIPE_RUN_ID"
STAGE_ENV = "IPCPIPE_STAGE"


def new_run_id() -> str:
    """12 hex chars, short enough to read in a console log line."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class LogContext:
    """
    Fields attached to log entries.

    run_id: Pipeline run shared by the orchestrator and its children
    stage: generator, transformer, consumer, orchestrator or relay
    pid: Process that emitted the entry
    span_id / parent_span_id / step: Set by ``log_step``
    """

    run_id: str | None = None
    stage: str | None = None
    pid: int | None = None
    span_id: str | None = None
    parent_span_id: str | None = None
    step: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def merge(self, **values: Any) -> "LogContext":
        """Copy with the given non-None values replaced."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})


_EMPTY = LogContext()
_current: ContextVar[LogContext] = ContextVar("ipcpipe_log_context", default=_EMPTY)


def get_context() -> LogContext:
    return _current.get()


def set_context(run_id: str | None = None, stage: str | None = None, pid: int | None = None) -> LogContext:
    """Replace the whole context."""
    ctx = LogContext(run_id=run_id, stage=stage, pid=pid)
    _current.set(ctx)
    return ctx


def bind_context(**values: Any) -> LogContext:
    """Merge values into the current context for the rest of this task."""
    ctx = get_context().merge(**values)
    _current.set(ctx)
    return ctx


def clear_context() -> None:
    _current.set(_EMPTY)


@contextmanager
def scoped_context(**values: Any) -> Iterator[LogContext]:
    """Merge values into the context for the duration of a ``with`` block."""
    token = _current.set(get_context().merge(**values))
    try:
        yield _current.get()
    finally:
        _current.reset(token)


def context_from_env(stage: str | None = None, environ: Mapping[str, str] | None = None) -> LogContext:
    """Bind the run id handed down by the orchestrator, plus this process's pid.

    ``stage`` wins over ``IPCPIPE_STAGE`` when given.
    """
    environ = os.environ if environ is None else environ
    return set_context(
        run_id=environ.get(RUN_ID_ENV) or None,
        stage=stage or environ.get(STAGE_ENV) or None,
        pid=os.getpid(),
    )


def add_context_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: copy context fields the event does not set itself."""
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Structured logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)
