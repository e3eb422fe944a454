"""
structlog setup for every ipcpipe process.

Level and renderer come from the arguments, else from ``IPCPIPE_LOG_LEVEL``
(default WARNING) and ``IPCPIPE_LOG_FORMAT`` (``console`` or ``json``,
default console). The orchestrator forwards both variables to its children,
so a whole run logs the same way.

Everything is written to stderr; stdout carries records only.
"""

import logging
import os
import sys
from enum import Enum

import structlog
from structlog.types import Processor

from ipcpipe.framework.logging.context import add_context_processor


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


def _renderer(fmt: LogFormat) -> Processor:
    if fmt is LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _processors(fmt: LogFormat) -> list[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_context_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(fmt),
    ]


def configure_logging(
    level: LogLevel | str | None = None,
    format: LogFormat | str | None = None,
    force: bool = False,
) -> None:
    """
    Route structlog through stdlib logging to stderr.

    A second call is ignored unless ``force`` is set; the CLI forces it so
    that command-line options replace whatever an import configured earlier.
    """
    if structlog.is_configured() and not force:
        return

    level_name = LogLevel((level or os.environ.get("IPCPIPE_LOG_LEVEL", "WARNING")).upper())
    fmt = LogFormat((format or os.environ.get("IPCPIPE_LOG_FORMAT", "console")).lower())
    numeric = getattr(logging, level_name.value)

    structlog.configure(
        processors=_processors(fmt),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric, force=True)
    logging.getLogger("ipcpipe").setLevel(numeric)
