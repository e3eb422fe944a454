"""Stage subprocesses.

``StageLauncher`` turns a stage name into a child process running the same
executable (``python -m ipcpipe <stage>``) and wraps it in a ``StageProcess``
handle.

Architecture:

    .. code-block:: text

        StageLauncher.spawn("transformer", stdout=PIPE)
        ┌────────────────────────────────────────────────────────┐
        │  argv   = command + [stage]                            │
        │  env    = os.environ  ⊕  overlay  ⊕  IPCPIPE_STAGE/RUN │
        │  stdin  = PIPE (always)                                │
        │  stdout = PIPE | inherited                             │
        │  stderr = inherited                                    │
        └────────────────────────────────────────────────────────┘
                              │
                              ▼
        StageProcess  ── stdin_sink()    → StreamLineSink
                      ── stdout_source() → StreamLineSource
                      ── wait() / terminate()
                      ── state: RUNNING | EXITED

Example:
    >>> launcher = StageLauncher()
    >>> consumer = await launcher.spawn("consumer")
    >>> sink = consumer.stdin_sink()
    >>> await sink.writeline("APPLE,10,red")
    >>> await sink.close()
    >>> await consumer.wait()
    0
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ipcpipe.core.errors import StageProcessError
from ipcpipe.framework.logging import RUN_ID_ENV, STAGE_ENV, get_logger
from ipcpipe.transports.streams import StreamLineSink, StreamLineSource

logger = get_logger(__name__)


def default_command() -> list[str]:
    """The command that re-enters this package in a child interpreter."""
    return [sys.executable, "-m", "ipcpipe"]


class ProcessState(str, Enum):
    RUNNING = "running"
    EXITED = "exited"


@dataclass
class StageProcess:
    """Handle for one spawned stage."""

    stage: str
    process: asyncio.subprocess.Process
    encoding: str = "utf-8"

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def state(self) -> ProcessState:
        if self.process.returncode is None:
            return ProcessState.RUNNING
        return ProcessState.EXITED

    def stdin_sink(self) -> StreamLineSink:
        if self.process.stdin is None:
            raise StageProcessError(f"Stage '{self.stage}' was started without a stdin pipe")
        return StreamLineSink(self.process.stdin, encoding=self.encoding, name=f"{self.stage}.stdin")

    def stdout_source(self) -> StreamLineSource:
        if self.process.stdout is None:
            raise StageProcessError(f"Stage '{self.stage}' was started without a stdout pipe")
        return StreamLineSource(self.process.stdout, encoding=self.encoding, name=f"{self.stage}.stdout")

    async def wait(self) -> int:
        """Wait for the child to exit. No timeout."""
        returncode = await self.process.wait()
        log = logger.info if returncode == 0 else logger.warning
        log("stage.exited", stage=self.stage, pid=self.pid, returncode=returncode)
        return returncode

    async def terminate(self, kill_timeout: float = 5.0) -> int | None:
        """Stop the child: SIGTERM, then SIGKILL after ``kill_timeout`` seconds."""
        if self.process.returncode is not None:
            return self.process.returncode

        try:
            self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), timeout=kill_timeout)
            except TimeoutError:
                self.process.kill()
                await self.process.wait()
        except ProcessLookupError:
            pass

        logger.warning("stage.terminated", stage=self.stage, pid=self.pid, returncode=self.process.returncode)
        return self.process.returncode


@dataclass
class StageLauncher:
    """Spawns stage subprocesses.

    Args:
        command: argv prefix for the child; the stage name is appended.
            Defaults to ``[sys.executable, "-m", "ipcpipe"]``.
        env: Variables overlaid on the child environment.
        inherit_env: If True the child starts from ``os.environ``.
        encoding: Text encoding for the pipes.
    """

    command: Sequence[str] | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    inherit_env: bool = True
    encoding: str = "utf-8"

    def build_command(self, stage: str) -> list[str]:
        base = list(self.command) if self.command else default_command()
        return [*base, stage]

    def build_env(self, stage: str, run_id: str | None = None) -> dict[str, str]:
        env = dict(os.environ) if self.inherit_env else {}
        env.update(self.env)
        env[STAGE_ENV] = stage
        if run_id:
            env[RUN_ID_ENV] = run_id
        return env

    async def spawn(
        self,
        stage: str,
        *,
        capture_stdout: bool = False,
        run_id: str | None = None,
    ) -> StageProcess:
        """Start ``stage`` with a stdin pipe and, optionally, a stdout pipe.

        Streams that are not piped are inherited from this process.

        Raises:
            StageProcessError: the command could not be started.
        """
        cmd = self.build_command(stage)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE if capture_stdout else None,
                env=self.build_env(stage, run_id),
            )
        except FileNotFoundError as exc:
            raise StageProcessError(
                f"Command not found: {cmd[0]}", cause=exc,
            ).with_context(stage=stage, run_id=run_id) from exc
        except OSError as exc:
            raise StageProcessError(
                f"Failed to start stage '{stage}': {exc}", cause=exc,
            ).with_context(stage=stage, run_id=run_id) from exc

        logger.info("stage.spawned", stage=stage, pid=process.pid, command=cmd)
        return StageProcess(stage=stage, process=process, encoding=self.encoding)
