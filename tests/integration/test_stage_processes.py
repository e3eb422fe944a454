"""Stage subprocesses spawned through ``StageLauncher``.

These start real ``python -m ipcpipe <stage>`` children from the source tree.
"""

import sys

import pytest

from ipcpipe.core.errors import ErrorCategory, StageProcessError
from ipcpipe.execution import ProcessState, StageLauncher, default_command


class TestStageLauncher:
    def test_default_command_reenters_package(self):
        assert default_command() == [sys.executable, "-m", "ipcpipe"]

    def test_build_command_appends_stage(self):
        launcher = StageLauncher(command=["ipcpipe"])
        assert launcher.build_command("consumer") == ["ipcpipe", "consumer"]

    def test_build_env_overlays_and_tags(self):
        launcher = StageLauncher(env={"A": "1"}, inherit_env=False)
        env = launcher.build_env("transformer", run_id="abc123")
        assert env == {"A": "1", "IPCPIPE_STAGE": "transformer", "IPCPIPE_RUN_ID": "abc123"}

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        launcher = StageLauncher(command=["/nonexistent/ipcpipe-binary"])

        with pytest.raises(StageProcessError) as exc_info:
            await launcher.spawn("consumer", run_id="r1")

        err = exc_info.value
        assert err.category == ErrorCategory.PROCESS
        assert err.context.stage == "consumer"
        assert err.context.run_id == "r1"
        assert isinstance(err.__cause__, FileNotFoundError)


class TestStageProcess:
    @pytest.mark.asyncio
    async def test_transformer_round_trip(self, launcher):
        proc = await launcher.spawn("transformer", capture_stdout=True)
        assert proc.state == ProcessState.RUNNING
        assert proc.pid > 0

        sink = proc.stdin_sink()
        await sink.writeline("apple,5,red")
        await sink.writeline("apple,5")
        await sink.close()

        lines = [line async for line in proc.stdout_source()]

        assert await proc.wait() == 0
        assert proc.state == ProcessState.EXITED
        assert lines == ["APPLE,10,red"]

    @pytest.mark.asyncio
    async def test_consumer_prints_to_inherited_stdout(self, launcher, capfd):
        proc = await launcher.spawn("consumer")
        sink = proc.stdin_sink()
        await sink.writeline("APPLE,10,red")
        await sink.writeline("BANANA,14,yellow")
        await sink.close()

        assert await proc.wait() == 0
        out = capfd.readouterr().out
        assert "Fruit: BANANA, Count: 14, Color: yellow" in out
        assert "Total items processed: 24" in out

    @pytest.mark.asyncio
    async def test_consumer_bad_quantity_exits_nonzero(self, launcher, capfd):
        proc = await launcher.spawn("consumer")
        sink = proc.stdin_sink()
        await sink.writeline("APPLE,many,red")
        await sink.close()

        assert await proc.wait() == 1
        captured = capfd.readouterr()
        assert "Total items processed" not in captured.out
        assert "Invalid quantity" in captured.err

    @pytest.mark.asyncio
    async def test_stdout_source_requires_pipe(self, launcher):
        proc = await launcher.spawn("consumer")
        try:
            with pytest.raises(StageProcessError):
                proc.stdout_source()
        finally:
            await proc.stdin_sink().close()
            await proc.wait()

    @pytest.mark.asyncio
    async def test_terminate_hanging_child(self):
        launcher = StageLauncher(command=[sys.executable, "-c", "import time; time.sleep(30)"])
        proc = await launcher.spawn("consumer")

        returncode = await proc.terminate(kill_timeout=2.0)

        assert returncode is not None
        assert returncode != 0
        assert proc.state == ProcessState.EXITED

    @pytest.mark.asyncio
    async def test_terminate_after_exit_is_noop(self, launcher):
        proc = await launcher.spawn("consumer")
        await proc.stdin_sink().close()
        assert await proc.wait() == 0
        assert await proc.terminate() == 0
