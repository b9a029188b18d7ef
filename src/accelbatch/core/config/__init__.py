"""Centralized configuration for accelbatch.

Quick start::

    from accelbatch.core.config import get_settings

    settings = get_settings()
    print(settings.batch_size)        # 1000
    print(settings.max_concurrency)   # os.cpu_count()

Architecture::

    settings.py       BatchSettings (Pydantic) + get_settings() cache

Guardrails:
    ❌ Parsing ACCELBATCH_* env vars ad-hoc in each module
    ✅ ``get_settings().batch_size`` from the cached singleton

Tags:
    accelbatch, configuration, settings, pydantic, env-files
"""

from .settings import BatchSettings, clear_settings_cache, get_settings

__all__ = [
    "BatchSettings",
    "clear_settings_cache",
    "get_settings",
]
