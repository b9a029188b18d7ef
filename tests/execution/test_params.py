"""Tests for ExecutionParameters validation and settings bridge."""

from __future__ import annotations

import pytest

from accelbatch.core.config import BatchSettings
from accelbatch.core.errors import ConfigurationError, InvalidConfigError
from accelbatch.execution.params import ExecutionParameters


def _params(**overrides) -> ExecutionParameters:
    values = {"total_items": 10, "batch_size": 2, "max_concurrency": 2, "sub_batches_per_worker": 1}
    values.update(overrides)
    return ExecutionParameters(**values)


class TestValidation:
    def test_valid(self):
        p = _params()
        assert p.total_items == 10
        assert p.batch_size == 2

    @pytest.mark.parametrize(
        "field", ["total_items", "batch_size", "max_concurrency", "sub_batches_per_worker"]
    )
    @pytest.mark.parametrize("value", [0, -1])
    def test_values_below_one_rejected(self, field, value):
        with pytest.raises(ConfigurationError) as exc_info:
            _params(**{field: value})
        assert exc_info.value.key == field

    @pytest.mark.parametrize("value", [1.5, "3", None, True])
    def test_non_integers_rejected(self, value):
        with pytest.raises(InvalidConfigError):
            _params(batch_size=value)

    def test_frozen(self):
        p = _params()
        with pytest.raises(AttributeError):
            p.batch_size = 5  # type: ignore[misc]


class TestFromSettings:
    def test_uses_settings_values(self):
        settings = BatchSettings(batch_size=50, max_concurrency=3, sub_batches_per_worker=4)
        p = ExecutionParameters.from_settings(1000, settings)
        assert (p.total_items, p.batch_size, p.max_concurrency, p.sub_batches_per_worker) == (
            1000, 50, 3, 4,
        )

    def test_overrides(self):
        settings = BatchSettings(batch_size=50, max_concurrency=3)
        p = ExecutionParameters.from_settings(100, settings, batch_size=7)
        assert p.batch_size == 7
        assert p.max_concurrency == 3

    def test_unknown_override_rejected(self):
        with pytest.raises(InvalidConfigError):
            ExecutionParameters.from_settings(100, BatchSettings(), page_size=7)

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("ACCELBATCH_BATCH_SIZE", "25")
        p = ExecutionParameters.from_settings(100)
        assert p.batch_size == 25

    def test_zero_total_rejected(self):
        with pytest.raises(ConfigurationError):
            ExecutionParameters.from_settings(0, BatchSettings())
