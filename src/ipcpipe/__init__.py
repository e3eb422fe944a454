"""
ipcpipe - a three-stage record pipeline wired over stdin/stdout pipes.

- ipcpipe.core: record format, errors, settings
- ipcpipe.transports: line sources and sinks (pipes, text streams, memory)
- ipcpipe.stages: producer, transformer, aggregator
- ipcpipe.execution: stage subprocesses and the orchestrator
- ipcpipe.cli: the ``ipcpipe`` command
"""

__version__ = "0.1.0"
