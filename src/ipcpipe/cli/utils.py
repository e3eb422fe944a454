"""
CLI utility helpers: error console, settings resolution, stream encoding
and coroutine running.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any, TextIO, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from ipcpipe.core.errors import ConfigError, PipeError
from ipcpipe.core.settings import PipelineSettings, get_settings

T = TypeVar("T")

err_console = Console(stderr=True)


def resolve_settings(**overrides: Any) -> PipelineSettings:
    """Load settings and apply the CLI options that were actually given."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid IPCPIPE_* configuration: {exc}", cause=exc) from exc
    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def report_error(error: PipeError) -> None:
    """Print a pipeline error on stderr in the CLI's format."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}",
        highlight=False,
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a stage coroutine to completion, mapping ``PipeError`` to exit code 1."""
    try:
        return asyncio.run(coro)
    except PipeError as exc:
        report_error(exc)
        raise typer.Exit(code=1) from exc


def use_wire_encoding(encoding: str, *, stdin: bool = False, stdout: bool = False) -> None:
    """Switch the process's stdin/stdout pipes to the pipeline wire encoding.

    Undecodable input bytes are replaced, as on the orchestrator's side of
    the pipe. Streams without ``reconfigure`` (test doubles) are left as is.
    """
    if stdin:
        _reconfigure(sys.stdin, encoding=encoding, errors="replace")
    if stdout:
        _reconfigure(sys.stdout, encoding=encoding)


def _reconfigure(stream: TextIO, **options: Any) -> None:
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(**options)
