"""
Structured, run-aware logging.

    from ipcpipe.framework.logging import configure_logging, context_from_env, get_logger, log_step

    configure_logging()
    context_from_env(stage="transformer")
    log = get_logger(__name__)

    with log_step("transformer.run"):
        ...
"""

from ipcpipe.framework.logging.config import LogFormat, LogLevel, configure_logging
from ipcpipe.framework.logging.context import (
    RUN_ID_ENV,
    STAGE_ENV,
    LogContext,
    bind_context,
    clear_context,
    context_from_env,
    get_context,
    get_logger,
    new_run_id,
    scoped_context,
    set_context,
)
from ipcpipe.framework.logging.timing import StepTimer, log_step

__all__ = [
    # Configuration
    "LogFormat",
    "LogLevel",
    "configure_logging",
    # Context
    "RUN_ID_ENV",
    "STAGE_ENV",
    "LogContext",
    "bind_context",
    "clear_context",
    "context_from_env",
    "get_context",
    "get_logger",
    "new_run_id",
    "scoped_context",
    "set_context",
    # Timing
    "StepTimer",
    "log_step",
]
