"""Allow ``python -m ipcpipe <command>``; the orchestrator spawns children this way."""

from ipcpipe.cli.app import main

if __name__ == "__main__":
    main()
