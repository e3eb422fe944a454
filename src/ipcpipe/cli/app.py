"""
Root Typer application for the ``ipcpipe`` command.

The first argument selects the mode: ``generator``, ``transformer``,
``consumer`` or ``run-pipeline``. Mode names are case-insensitive. With no
argument the usage line is printed; an unknown name is reported together
with the usage line. Neither case is an error exit.
"""

from __future__ import annotations

import sys
from typing import Any

import click
import typer
from typer.core import TyperGroup

from ipcpipe.cli.utils import err_console, report_error, resolve_settings, run_async, use_wire_encoding
from ipcpipe.core.errors import PipeError
from ipcpipe.execution.orchestrator import run_in_memory, run_pipeline
from ipcpipe.execution.process import StageLauncher
from ipcpipe.framework.logging import LogFormat, LogLevel, configure_logging, context_from_env
from ipcpipe.stages.aggregator import aggregate
from ipcpipe.stages.producer import produce
from ipcpipe.stages.transformer import transform
from ipcpipe.transports.streams import TextLineSink, TextLineSource, emit

USAGE = "Usage: ipcpipe [generator|transformer|consumer|run-pipeline]"


def _unknown_command(name: str) -> click.Command:
    def callback() -> None:
        typer.echo(f"Unknown command: {name}")
        typer.echo(USAGE)

    return click.Command(
        name,
        callback=callback,
        add_help_option=False,
        context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
    )


class StageGroup(TyperGroup):
    """Resolves mode names case-insensitively and reports unknown ones."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        command = super().get_command(ctx, cmd_name.lower())
        if command is None:
            return _unknown_command(cmd_name)
        return command


app = typer.Typer(
    name="ipcpipe",
    cls=StageGroup,
    help="ipcpipe — a generator → transformer → consumer pipeline over stdin/stdout.",
    invoke_without_command=True,
    no_args_is_help=False,
    add_completion=False,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from ipcpipe import __version__

        typer.echo(f"ipcpipe {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: LogLevel | None = typer.Option(None, "--log-level", case_sensitive=False, help="Log level."),
    log_format: LogFormat | None = typer.Option(None, "--log-format", case_sensitive=False, help="Log renderer."),
) -> None:
    """Run one pipeline stage, or the whole pipeline."""
    if ctx.invoked_subcommand is None:
        typer.echo(USAGE)
        return

    try:
        settings = resolve_settings(
            log_level=log_level.value if log_level else None,
            log_format=log_format.value if log_format else None,
        )
    except PipeError as exc:
        report_error(exc)
        raise typer.Exit(code=1) from exc

    configure_logging(level=settings.log_level.upper(), format=settings.log_format, force=True)
    context_from_env(stage=ctx.invoked_subcommand)
    ctx.obj = {"log_level": settings.log_level, "log_format": settings.log_format, "encoding": settings.encoding}


# ── Stage commands ───────────────────────────────────────────────────────


@app.command("generator")
def generator(
    delay_ms: int | None = typer.Option(None, "--delay-ms", min=0, help="Pause between records (default 500)."),
) -> None:
    """Write the sample records to stdout, diagnostics to stderr."""
    settings = _settings(delay_ms=delay_ms)
    use_wire_encoding(settings.encoding, stdout=True)
    emit(sys.stderr, "Generator started...")
    run_async(produce(TextLineSink(sys.stdout), sys.stderr, delay=settings.delay_seconds))
    emit(sys.stderr, "Generator finished.")


@app.command("transformer")
def transformer() -> None:
    """Transform stdin records onto stdout, diagnostics to stderr."""
    use_wire_encoding(_settings().encoding, stdin=True, stdout=True)
    run_async(transform(TextLineSource(sys.stdin), TextLineSink(sys.stdout), sys.stderr))


@app.command("consumer")
def consumer() -> None:
    """Print stdin records and their total on stdout."""
    # stdout is the report, not a pipe to another stage
    use_wire_encoding(_settings().encoding, stdin=True)
    run_async(aggregate(TextLineSource(sys.stdin), sys.stdout))


@app.command("run-pipeline")
def run_pipeline_command(
    ctx: typer.Context,
    delay_ms: int | None = typer.Option(None, "--delay-ms", min=0, help="Pause between records (default 500)."),
    timeout: float | None = typer.Option(None, "--timeout", min=0.001, help="Give up after this many seconds."),
    in_memory: bool = typer.Option(False, "--in-memory", help="Run the stages as tasks instead of processes."),
) -> None:
    """Spawn transformer and consumer processes and feed them the sample records."""
    settings = _settings(delay_ms=delay_ms, timeout_seconds=timeout)

    if in_memory:
        run_async(run_in_memory(delay=settings.delay_seconds, out=sys.stdout, diag=sys.stderr))
        return

    launcher = StageLauncher(env=_child_env(ctx.obj), encoding=settings.encoding)
    result = run_async(
        run_pipeline(
            delay=settings.delay_seconds,
            out=sys.stdout,
            launcher=launcher,
            timeout=settings.timeout_seconds,
            kill_timeout=settings.kill_timeout_seconds,
        )
    )
    if not result.succeeded:
        err_console.print(
            f"[bold red]Error[/bold red] (PROCESS): stage exited abnormally "
            f"(transformer={result.transformer_returncode}, consumer={result.consumer_returncode})",
            highlight=False,
        )
        raise typer.Exit(code=1)


# ── Helpers ──────────────────────────────────────────────────────────────


def _settings(**overrides: Any):
    try:
        return resolve_settings(**overrides)
    except PipeError as exc:
        report_error(exc)
        raise typer.Exit(code=1) from exc


def _child_env(obj: dict[str, str] | None) -> dict[str, str]:
    """Pass the resolved logging options and wire encoding down to the child stages."""
    if not obj:
        return {}
    return {
        "IPCPIPE_LOG_LEVEL": obj["log_level"],
        "IPCPIPE_LOG_FORMAT": obj["log_format"],
        "IPCPIPE_ENCODING": obj["encoding"],
    }


def main() -> None:
    """Console-script entry point."""
    app(prog_name="ipcpipe")
