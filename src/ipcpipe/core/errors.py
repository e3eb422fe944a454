"""
Structured error types for ipcpipe.

Every failure a stage can raise carries a category, the stage/run/line it
happened on and an optional chained cause. The CLI renders the category and
message; logs get ``to_dict()``.

Architecture:
    ::

        PipeError (category, context, cause)
        ├── RecordParseError      PARSE     also a ValueError
        ├── StreamClosedError     STREAM
        ├── StageProcessError     PROCESS
        ├── PipelineTimeoutError  TIMEOUT   also a TimeoutError
        └── ConfigError           CONFIG

Nothing here is retryable. A run either completes or stops at the first fatal
error of the stage that hit it.

Examples:
    >>> err = RecordParseError("Invalid quantity", line="APPLE,x,red")
    >>> err.category
    <ErrorCategory.PARSE: 'PARSE'>
    >>> err.with_context(stage="consumer").context.stage
    'consumer'
    >>> categorize_error(BrokenPipeError())
    <ErrorCategory.STREAM: 'STREAM'>
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    PARSE = "PARSE"
    STREAM = "STREAM"
    PROCESS = "PROCESS"
    TIMEOUT = "TIMEOUT"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Where an error happened. Unknown keys land in ``metadata``."""

    stage: str | None = None
    run_id: str | None = None
    line: str | None = None
    pid: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def known_keys(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls) if f.name != "metadata")

    def to_dict(self) -> dict[str, Any]:
        out = {key: getattr(self, key) for key in ("stage", "run_id", "line", "pid") if getattr(self, key) is not None}
        return {**out, **self.metadata}


class PipeError(Exception):
    """
    Base class for ipcpipe failures.

    Subclasses pick a ``default_category``. ``cause`` is chained onto
    ``__cause__`` even when the error is built outside an ``except`` block.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **values: Any) -> PipeError:
        """Fill in context fields and return ``self`` so it can be raised inline.

            raise StreamClosedError("Write failed").with_context(stage="transformer")
        """
        known = ErrorContext.known_keys()
        for key, value in values.items():
            if key in known:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if ctx := self.context.to_dict():
            data["context"] = ctx
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class RecordParseError(PipeError, ValueError):
    """A mandatory field did not parse (the consumer's quantity)."""

    default_category = ErrorCategory.PARSE

    def __init__(
        self,
        message: str,
        *,
        line: str | None = None,
        field_name: str | None = None,
        value: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.value = value
        if line is not None:
            self.context.line = line

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field_name:
            data["field"] = self.field_name
        if self.value is not None:
            data["value"] = repr(self.value)
        return data


class StreamClosedError(PipeError):
    """The other end of a stream went away: broken pipe, reset, or a closed sink."""

    default_category = ErrorCategory.STREAM


class StageProcessError(PipeError):
    """A stage subprocess could not be started or has no such pipe."""

    default_category = ErrorCategory.PROCESS


class PipelineTimeoutError(PipeError, TimeoutError):
    """The orchestrator deadline expired before the pipeline completed."""

    default_category = ErrorCategory.TIMEOUT

    def __init__(self, timeout: float, *, elapsed: float | None = None, **kwargs: Any):
        message = f"Pipeline timed out after {timeout}s"
        if elapsed is not None:
            message += f" (ran for {elapsed:.2f}s)"
        super().__init__(message, **kwargs)
        self.timeout = timeout
        self.elapsed = elapsed


class ConfigError(PipeError):
    """An ``IPCPIPE_*`` variable or CLI option failed validation."""

    default_category = ErrorCategory.CONFIG


# First match wins; order matters because BrokenPipeError is an OSError.
_FOREIGN_CATEGORIES: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], ErrorCategory], ...] = (
    ((BrokenPipeError, ConnectionResetError, EOFError), ErrorCategory.STREAM),
    (TimeoutError, ErrorCategory.TIMEOUT),
    ((ChildProcessError, FileNotFoundError, ProcessLookupError), ErrorCategory.PROCESS),
    (ValueError, ErrorCategory.PARSE),
)


def categorize_error(error: BaseException) -> ErrorCategory:
    """Category of any exception, ``PipeError`` or not."""
    if isinstance(error, PipeError):
        return error.category
    for types, category in _FOREIGN_CATEGORIES:
        if isinstance(error, types):
            return category
    return ErrorCategory.UNKNOWN


__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "PipeError",
    "PipelineTimeoutError",
    "RecordParseError",
    "StageProcessError",
    "StreamClosedError",
    "categorize_error",
]
