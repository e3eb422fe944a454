"""Core primitives: record format, errors and settings."""

from ipcpipe.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    PipeError,
    PipelineTimeoutError,
    RecordParseError,
    StageProcessError,
    StreamClosedError,
    categorize_error,
)
from ipcpipe.core.records import (
    SAMPLE_RECORDS,
    Record,
    parse_quantity,
    split_fields,
    strip_newline,
)
from ipcpipe.core.settings import PipelineSettings, get_settings

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "PipeError",
    "RecordParseError",
    "StreamClosedError",
    "StageProcessError",
    "PipelineTimeoutError",
    "ConfigError",
    "categorize_error",
    # Records
    "SAMPLE_RECORDS",
    "Record",
    "parse_quantity",
    "split_fields",
    "strip_newline",
    # Settings
    "PipelineSettings",
    "get_settings",
]
