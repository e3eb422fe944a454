"""ipcpipe CLI.

Usage:
    ipcpipe generator | ipcpipe transformer | ipcpipe consumer
    ipcpipe run-pipeline [--delay-ms N] [--timeout S] [--in-memory]
"""

from ipcpipe.cli.app import app, main

__all__ = ["app", "main"]
