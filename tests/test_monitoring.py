"""Tests for structured logging setup and timing helpers."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest
import structlog
from structlog.testing import capture_logs

from resource_store.logging import configure_logging
from resource_store.monitoring import round_scope, timed


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestTimed:
    @pytest.mark.asyncio
    async def test_logs_completion_with_duration(self) -> None:
        @timed("resource.sample")
        async def work(value):
            return value * 2

        with capture_logs() as logs:
            assert await work(21) == 42

        [entry] = logs
        assert entry["event"] == "resource.sample.complete"
        assert entry["log_level"] == "debug"
        assert entry["duration_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_logs_and_reraises_errors(self) -> None:
        @timed("resource.sample")
        async def work():
            raise LookupError("missing")

        with capture_logs() as logs:
            with pytest.raises(LookupError):
                await work()

        [entry] = logs
        assert entry["event"] == "resource.sample.error"
        assert entry["error"] == "missing"

    def test_keeps_wrapped_name(self) -> None:
        @timed("resource.sample")
        async def fetch_profile():
            return None

        assert fetch_profile.__name__ == "fetch_profile"


def test_round_scope_binds_round_id() -> None:
    with round_scope() as round_id:
        assert structlog.contextvars.get_contextvars()["round_id"] == round_id
    assert "round_id" not in structlog.contextvars.get_contextvars()


def test_round_scope_ids_are_distinct() -> None:
    with round_scope() as first:
        pass
    with round_scope() as second:
        pass
    assert first != second


def test_configure_logging_emits_json(restore_logging) -> None:
    stream = StringIO()
    configure_logging(handlers=[logging.StreamHandler(stream)], level="INFO")

    log = structlog.get_logger("resource_store.sample")
    log.debug("resource.sample.hidden")
    log.info("resource.sample.visible", resource_type="user")

    [line] = stream.getvalue().splitlines()
    payload = json.loads(line)
    assert payload["event"] == "resource.sample.visible"
    assert payload["level"] == "info"
    assert payload["logger"] == "resource_store.sample"
    assert payload["resource_type"] == "user"
    assert "timestamp" in payload


def test_configure_logging_uses_settings_level(restore_logging, monkeypatch) -> None:
    monkeypatch.setenv("RESOURCE_STORE_LOG_LEVEL", "warning")

    configure_logging(handlers=[logging.StreamHandler(StringIO())])

    assert logging.getLogger().level == logging.WARNING
