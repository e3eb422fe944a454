"""Pipeline settings.

``PipelineSettings`` reads ``IPCPIPE_*`` environment variables (and an optional
``.env`` file) into validated fields. CLI options override individual fields
with ``model_copy(update=...)``.

Examples:
    >>> from ipcpipe.core.settings import PipelineSettings
    >>> PipelineSettings(delay_ms=0).delay_seconds
    0.0
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Settings shared by every pipeline mode.

    Fields
    ──────
    delay_ms             : Pause between emitted records (CLI runs)
    timeout_seconds      : Orchestrator deadline, unbounded when unset
    kill_timeout_seconds : Grace period between SIGTERM and SIGKILL
    log_level            : Structlog log level
    log_format           : ``console`` or ``json``
    encoding             : Text encoding on subprocess pipes
    """

    model_config = SettingsConfigDict(
        env_prefix="IPCPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Pacing ───────────────────────────────────────────────────
    delay_ms: int = Field(default=500, ge=0)

    # ── Orchestration ────────────────────────────────────────────
    timeout_seconds: float | None = Field(default=None, gt=0)
    kill_timeout_seconds: float = Field(default=5.0, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"

    # ── Wire ─────────────────────────────────────────────────────
    encoding: str = "utf-8"

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> PipelineSettings:
    """Return the process-wide settings, loaded once."""
    return PipelineSettings()


__all__ = ["PipelineSettings", "get_settings"]
