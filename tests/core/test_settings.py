"""Tests for accelbatch.core.config.settings — BatchSettings + get_settings."""

from __future__ import annotations

import os

import pytest
from pydantic import ValidationError

from accelbatch.core.config.settings import (
    BatchSettings,
    clear_settings_cache,
    get_settings,
)


# ── BatchSettings defaults ───────────────────────────────────────────────


class TestDefaults:
    def test_default_batch_size(self):
        assert BatchSettings().batch_size == 1000

    def test_default_concurrency_is_cpu_count(self):
        assert BatchSettings().max_concurrency == (os.cpu_count() or 1)

    def test_default_sub_batches(self):
        assert BatchSettings().sub_batches_per_worker == 1

    def test_default_exception_behavior(self):
        assert BatchSettings().exception_behavior == "ignore_all"


# ── Environment overrides ────────────────────────────────────────────────


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ACCELBATCH_BATCH_SIZE", "250")
        monkeypatch.setenv("ACCELBATCH_MAX_CONCURRENCY", "3")
        monkeypatch.setenv("ACCELBATCH_EXCEPTION_BEHAVIOR", "stop_on_first")
        s = BatchSettings()
        assert s.batch_size == 250
        assert s.max_concurrency == 3
        assert s.exception_behavior == "stop_on_first"

    def test_rejects_zero(self, monkeypatch):
        monkeypatch.setenv("ACCELBATCH_BATCH_SIZE", "0")
        with pytest.raises(ValidationError):
            BatchSettings()

    def test_rejects_unknown_behavior(self, monkeypatch):
        monkeypatch.setenv("ACCELBATCH_EXCEPTION_BEHAVIOR", "retry_forever")
        with pytest.raises(ValidationError):
            BatchSettings()


# ── get_settings cache ───────────────────────────────────────────────────


class TestCache:
    def test_cached_instance(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("ACCELBATCH_BATCH_SIZE", "10")
        assert get_settings() is first
        reloaded = get_settings(_force_reload=True)
        assert reloaded.batch_size == 10

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
