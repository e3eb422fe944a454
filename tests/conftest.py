"""
Shared pytest fixtures and configuration for ipcpipe tests.

This module provides:
- Log context and settings cache cleanup for test isolation
- A child-process environment that can import ``ipcpipe`` from ``src/``
- A ``StageLauncher`` wired to that environment
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).parent.parent / "src"

# Ensure the package is importable without installation
sys.path.insert(0, str(SRC_DIR))

from ipcpipe.core.settings import get_settings  # noqa: E402
from ipcpipe.execution.process import StageLauncher  # noqa: E402
from ipcpipe.framework.logging import clear_context  # noqa: E402


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_log_context() -> Generator[None, None, None]:
    """Reset the logging contextvar before and after each test."""
    clear_context()
    yield
    clear_context()


@pytest.fixture(autouse=True)
def clean_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any IPCPIPE_* variables from the outer shell."""
    for key in list(os.environ):
        if key.startswith("IPCPIPE_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Subprocess Fixtures
# =============================================================================


@pytest.fixture
def child_env() -> dict[str, str]:
    """Environment overlay that lets ``python -m ipcpipe`` find ``src/``."""
    existing = os.environ.get("PYTHONPATH")
    pythonpath = str(SRC_DIR) if not existing else os.pathsep.join([str(SRC_DIR), existing])
    return {"PYTHONPATH": pythonpath, "PYTHONUNBUFFERED": "1"}


@pytest.fixture
def launcher(child_env: dict[str, str]) -> StageLauncher:
    """Launcher for stage subprocesses running from the source tree."""
    return StageLauncher(env=child_env)
