"""
Unit tests for the structured logging helpers.
"""

import json
import logging

import pytest

from dpslogs.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("dpslogs.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestLogContext:
    def test_context_applied_and_restored(self):
        with LogContext(operation="get_log_by_id", component="logs", log_id="abc"):
            record = _record()
            ContextFilter().filter(record)

        assert record.operation == "get_log_by_id"
        assert record.component == "logs"
        assert record.log_id == "abc"
        assert get_log_context() == {}

    def test_nested_context_keeps_correlation_id(self):
        with LogContext(operation="submit_log") as outer:
            with LogContext(operation="create_log") as inner:
                assert inner.context["correlation_id"] == outer.context["correlation_id"]
                assert get_log_context()["operation"] == "create_log"
            assert get_log_context()["operation"] == "submit_log"

    async def test_async_context_manager(self):
        async with LogContext(operation="get_filtered_logs"):
            assert get_log_context()["operation"] == "get_filtered_logs"
        assert "operation" not in get_log_context()

    def test_set_and_clear(self):
        set_log_context(user_id=42, operation="delete_log")
        assert get_log_context()["user_id"] == "42"

        clear_log_context()
        assert get_log_context() == {}


@pytest.mark.unit
class TestContextFilter:
    def test_defaults_without_context(self):
        record = _record()
        ContextFilter().filter(record)

        assert record.operation == "N/A"
        assert record.correlation_id == "N/A"
        assert record.component == "dpslogs"

    def test_explicit_extra_wins(self):
        with LogContext(log_id="from-context"):
            record = _record(log_id="from-extra")
            ContextFilter().filter(record)

        assert record.log_id == "from-extra"


@pytest.mark.unit
class TestJSONFormatter:
    def test_emits_context_and_extra(self):
        record = _record(key="log:1", deleted_count=1)
        with LogContext(operation="delete_log"):
            ContextFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["operation"] == "delete_log"
        assert payload["extra"] == {"key": "log:1", "deleted_count": 1}
        assert "user_id" not in payload
