"""Pipeline orchestration.

Two ways to run the three stages end to end:

``run_pipeline``
    Process mode. The transformer and the consumer run as child processes;
    this process generates records into the transformer's stdin and relays
    the transformer's stdout into the consumer's stdin.

``run_in_memory``
    The same stage coroutines joined by ``MemoryChannel`` instances inside
    one event loop.

Process mode data plane:

    .. code-block:: text

        generation loop ──stdin──▶ transformer ──stdout──▶ relay task
                                                               │
                                       consumer ◀──stdin───────┘
                                          │
                                          ▼ stdout (inherited)

Shutdown order: close the transformer's stdin, wait for the relay to drain
(the relay closes the consumer's stdin at the transformer's end-of-stream),
then wait for the consumer and the transformer. Waits are unbounded unless a
``timeout`` is given; on expiry or cancellation both children are terminated.
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TextIO

from ipcpipe.core.errors import PipelineTimeoutError, categorize_error
from ipcpipe.core.records import SAMPLE_RECORDS
from ipcpipe.execution.process import StageLauncher, StageProcess
from ipcpipe.framework.logging import bind_context, configure_logging, get_logger, log_step, new_run_id
from ipcpipe.stages.aggregator import aggregate
from ipcpipe.stages.producer import produce
from ipcpipe.stages.transformer import transform
from ipcpipe.transports.memory import MemoryChannel
from ipcpipe.transports.protocol import LineSink, LineSource
from ipcpipe.transports.streams import emit

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one pipeline run.

    ``total`` is only known in memory mode; in process mode the consumer
    prints it itself.
    """

    run_id: str
    records_sent: int
    lines_relayed: int
    transformer_returncode: int | None = None
    consumer_returncode: int | None = None
    total: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.transformer_returncode in (0, None) and self.consumer_returncode in (0, None)


async def relay(source: LineSource, sink: LineSink) -> int:
    """Copy every line from ``source`` to ``sink`` in order, then close ``sink``.

    Returns the number of lines copied.
    """
    count = 0
    async for line in source:
        await sink.writeline(line)
        count += 1
    await sink.close()
    return count


async def run_pipeline(
    records: Iterable[str] = SAMPLE_RECORDS,
    *,
    delay: float = 0.0,
    out: TextIO | None = None,
    launcher: StageLauncher | None = None,
    timeout: float | None = None,
    kill_timeout: float = 5.0,
) -> PipelineResult:
    """Run generator → transformer process → consumer process.

    Args:
        records: Lines to feed the transformer.
        delay: Seconds between records.
        out: Stream for progress lines (defaults to ``sys.stdout``).
        launcher: Spawns the child stages.
        timeout: Overall deadline in seconds, or None to wait forever.
        kill_timeout: Grace period between SIGTERM and SIGKILL when stopping
            children after a timeout or cancellation.

    Logging is set up from the environment unless the caller already
    configured it, so log events never land on the shared stdout.

    Raises:
        StreamClosedError: a child went away while data was still flowing.
        StageProcessError: a child could not be started.
        PipelineTimeoutError: ``timeout`` expired.
    """
    out = out if out is not None else sys.stdout
    configure_logging()
    launcher = launcher or StageLauncher()
    run_id = new_run_id()
    bind_context(run_id=run_id, stage="orchestrator")

    emit(out, "Starting pipeline...")
    started = time.monotonic()
    children: list[StageProcess] = []

    try:
        consumer = await launcher.spawn("consumer", run_id=run_id)
        children.append(consumer)
        transformer = await launcher.spawn("transformer", capture_stdout=True, run_id=run_id)
        children.append(transformer)

        async with asyncio.timeout(timeout):
            result = await _drive(records, delay, out, run_id, consumer, transformer)
    except TimeoutError as exc:
        elapsed = time.monotonic() - started
        logger.error("pipeline.timeout", timeout=timeout, elapsed=round(elapsed, 2))
        await _terminate_all(children, kill_timeout)
        raise PipelineTimeoutError(timeout or 0.0, elapsed=elapsed, cause=exc).with_context(
            stage="orchestrator", run_id=run_id,
        ) from exc
    except Exception as exc:
        logger.warning("pipeline.failed", category=categorize_error(exc).value, error=str(exc))
        await _terminate_all(children, kill_timeout)
        raise
    except BaseException:
        await _terminate_all(children, kill_timeout)
        raise

    emit(out, "Pipeline finished.")
    return result


async def _drive(
    records: Iterable[str],
    delay: float,
    out: TextIO,
    run_id: str,
    consumer: StageProcess,
    transformer: StageProcess,
) -> PipelineResult:
    relay_task = asyncio.create_task(
        _relay_stage(transformer.stdout_source(), consumer.stdin_sink()),
        name=f"relay-{run_id}",
    )

    try:
        with log_step("pipeline.generate") as timer:
            sent = await produce(
                transformer.stdin_sink(), out, records, delay=delay, label="Pipeline sent",
            )
            timer.add_metric("records", sent)
        # The relay closes the consumer's stdin only after the last line.
        relayed = await relay_task
    except BaseException:
        relay_task.cancel()
        await asyncio.gather(relay_task, return_exceptions=True)
        raise

    consumer_rc = await consumer.wait()
    transformer_rc = await transformer.wait()

    return PipelineResult(
        run_id=run_id,
        records_sent=sent,
        lines_relayed=relayed,
        transformer_returncode=transformer_rc,
        consumer_returncode=consumer_rc,
    )


async def _relay_stage(source: LineSource, sink: LineSink) -> int:
    bind_context(stage="relay")
    with log_step("pipeline.relay", level="debug") as timer:
        count = await relay(source, sink)
        timer.add_metric("lines", count)
    return count


async def _terminate_all(children: list[StageProcess], kill_timeout: float) -> None:
    for child in children:
        await child.terminate(kill_timeout)


async def run_in_memory(
    records: Iterable[str] = SAMPLE_RECORDS,
    *,
    delay: float = 0.0,
    out: TextIO | None = None,
    diag: TextIO | None = None,
    maxsize: int = 0,
) -> PipelineResult:
    """Run all three stages as tasks joined by in-memory channels.

    ``out`` receives the consumer report and ``diag`` the producer and
    transformer diagnostics (defaults: ``sys.stdout`` / ``sys.stderr``).
    """
    out = out if out is not None else sys.stdout
    diag = diag if diag is not None else sys.stderr
    configure_logging()
    run_id = new_run_id()
    bind_context(run_id=run_id, stage="orchestrator")

    generated = MemoryChannel(maxsize, name="generated")
    transformed = MemoryChannel(maxsize, name="transformed")

    with log_step("pipeline.in_memory") as timer:
        try:
            async with asyncio.TaskGroup() as tg:
                producer_task = tg.create_task(produce(generated, diag, records, delay=delay))
                transformer_task = tg.create_task(transform(generated, transformed, diag))
                consumer_task = tg.create_task(aggregate(transformed, out))
        except ExceptionGroup as eg:
            # Stages fail one at a time; surface the stage error itself.
            raise eg.exceptions[0] from None
        timer.add_metric("total", consumer_task.result().total)

    return PipelineResult(
        run_id=run_id,
        records_sent=producer_task.result(),
        lines_relayed=transformer_task.result().written,
        total=consumer_task.result().total,
    )
