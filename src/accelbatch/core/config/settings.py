"""
Centralized settings for accelbatch.

:class:`BatchSettings` supplies the defaults a run falls back to when the
caller does not spell out every knob: batch size, concurrency degree,
sub-batches per worker, exception behavior and logging. Values come from
``ACCELBATCH_*`` environment variables or a ``.env`` file.

Per-run values always win; settings are only consulted by
:meth:`ExecutionParameters.from_settings
<accelbatch.execution.params.ExecutionParameters.from_settings>`,
:meth:`ExceptionPolicy.from_settings
<accelbatch.execution.policy.ExceptionPolicy.from_settings>` and the
query executor.

Tags:
    accelbatch, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _cpu_count() -> int:
    return os.cpu_count() or 1


class BatchSettings(BaseSettings):
    """accelbatch configuration.

    All fields can be set via ``ACCELBATCH_*`` environment variables (e.g.
    ``ACCELBATCH_BATCH_SIZE=500``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCELBATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Batching ─────────────────────────────────────────────────
    batch_size: int = Field(default=1000, ge=1, description="Items per page")
    max_concurrency: int = Field(
        default_factory=_cpu_count, ge=1, description="Worker ranges running at once"
    )
    sub_batches_per_worker: int = Field(
        default=1, ge=1, description="Pages handed to one worker range"
    )

    # ── Failure handling ─────────────────────────────────────────
    exception_behavior: str = Field(
        default="ignore_all",
        pattern="^(ignore_all|stop_on_first)$",
        description="ignore_all | stop_on_first",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern="^(json|console)$")


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, BatchSettings] = {}


def get_settings(*, _force_reload: bool = False) -> BatchSettings:
    """Return the process-wide :class:`BatchSettings`, loading it once."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = BatchSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
