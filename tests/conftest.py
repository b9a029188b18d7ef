"""
Shared pytest fixtures and configuration for accelbatch tests.

This module provides:
- Settings cache and structlog isolation between tests
- Marker auto-tagging by test location
- ``FakePageLoader`` fixtures for engine tests

Usage:
    Fixtures are auto-discovered by pytest; use them as function arguments.

    async def test_something(page_loader):
        rows = await run_batches(page_loader, ...)
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Ensure accelbatch package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from accelbatch.core.config import clear_settings_cache

from tests._support.fakes import FakePageLoader


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
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any ACCELBATCH_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("ACCELBATCH_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Undo any configure_logging() call made by a test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Page Loader Fixtures
# =============================================================================


@pytest.fixture
def page_loader() -> FakePageLoader:
    """Loader for 10 items in pages of 2 (5 pages), all succeeding."""
    return FakePageLoader(total_items=10, batch_size=2)


@pytest.fixture
def make_loader():
    """Factory for custom :class:`FakePageLoader` instances."""

    def _make(**kwargs) -> FakePageLoader:
        return FakePageLoader(**kwargs)

    return _make
