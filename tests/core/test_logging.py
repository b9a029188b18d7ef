"""
Tests for the logging module.

Tests verify:
- JSON output carries ECS field names and the service name
- DEBUG logs are suppressed at INFO level
- LogContext binds and unbinds run context
"""

import json
import logging

import pytest
import structlog

from accelbatch.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)


def _json_messages(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records if r.getMessage().startswith("{")]


class TestConfigureLogging:
    """Test configure_logging output."""

    def test_json_output_is_ecs_compatible(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True, service="batch-tests")

        get_logger("test.json").info("batch.run.start", total_pages=5)

        messages = _json_messages(caplog)
        assert messages, "expected a JSON log line"
        entry = messages[-1]
        assert entry["event"] == "batch.run.start"
        assert entry["total_pages"] == 5
        assert entry["log.level"] == "info"
        assert entry["service.name"] == "batch-tests"
        assert "@timestamp" in entry

    def test_debug_suppressed_at_info(self, caplog):
        caplog.set_level(logging.DEBUG)
        configure_logging(level="INFO", json_format=True)

        log = get_logger("test.level")
        log.debug("batch.range.start")
        log.info("batch.run.complete")

        events = [m["event"] for m in _json_messages(caplog)]
        assert "batch.range.start" not in events
        assert "batch.run.complete" in events

    def test_level_and_format_from_settings(self, caplog, monkeypatch):
        caplog.set_level(logging.DEBUG)
        monkeypatch.setenv("ACCELBATCH_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("ACCELBATCH_LOG_FORMAT", "json")
        configure_logging_from_settings(service="from-env")

        log = get_logger("test.settings")
        log.info("batch.run.start")
        log.warning("batch.page.failed", page_number=3)

        messages = _json_messages(caplog)
        assert [m["event"] for m in messages] == ["batch.page.failed"]
        assert messages[0]["service.name"] == "from-env"


class TestContext:
    """Test context binding helpers."""

    def teardown_method(self):
        clear_context()

    def test_bind_and_unbind(self):
        bind_context(run_id="r-1", range_index=2)
        assert structlog.contextvars.get_contextvars() == {"run_id": "r-1", "range_index": 2}
        unbind_context("range_index")
        assert structlog.contextvars.get_contextvars() == {"run_id": "r-1"}

    def test_log_context_scoped(self):
        with LogContext(run_id="abc"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "abc"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_log_context_async(self):
        async with LogContext(run_id="xyz"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "xyz"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_context_in_json_output(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True)

        with LogContext(run_id="ctx-1"):
            get_logger("test.ctx").info("batch.page.failed")

        assert _json_messages(caplog)[-1]["run_id"] == "ctx-1"
