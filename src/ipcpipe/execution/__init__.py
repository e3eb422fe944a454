"""Process handles and pipeline orchestration."""

from ipcpipe.execution.orchestrator import PipelineResult, relay, run_in_memory, run_pipeline
from ipcpipe.execution.process import (
    ProcessState,
    StageLauncher,
    StageProcess,
    default_command,
)

__all__ = [
    "PipelineResult",
    "ProcessState",
    "StageLauncher",
    "StageProcess",
    "default_command",
    "relay",
    "run_in_memory",
    "run_pipeline",
]
