"""
Unit tests for logging configuration
"""
import json
import logging
import pytest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from logging_config import (
    DevFormatter,
    StructuredFormatter,
    get_request_id,
    log_performance,
    log_with_context,
    reset_request_id,
    set_request_id,
    setup_logging,
)


def make_record(message="hello", extra=None):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, (), None)
    if extra:
        record.extra_data = extra
    return record


class TestStructuredFormatter:

    def test_outputs_json(self):
        data = json.loads(StructuredFormatter().format(make_record()))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["timestamp"].endswith("Z")
        assert "context" not in data

    def test_provider_and_attempt_are_top_level(self):
        record = make_record(extra={"provider": "groq", "attempt": 2, "error_type": "LLMError"})
        data = json.loads(StructuredFormatter().format(record))

        assert data["provider"] == "groq"
        assert data["attempt"] == 2
        assert data["context"] == {"error_type": "LLMError"}

    def test_includes_request_id(self):
        token = set_request_id("req-42")
        try:
            data = json.loads(StructuredFormatter().format(make_record()))
        finally:
            reset_request_id(token)

        assert data["request_id"] == "req-42"


class TestDevFormatter:

    def test_tags_provider_attempt(self):
        output = DevFormatter().format(make_record("Calling provider", extra={"provider": "openai", "attempt": 3}))
        assert "<openai#3>" in output
        assert "Calling provider" in output

    def test_includes_other_fields(self):
        output = DevFormatter().format(make_record(extra={"complexity": 2}))
        assert "hello" in output
        assert "complexity=2" in output


class TestRequestId:

    def test_default_empty(self):
        assert get_request_id() == ""

    def test_set_and_reset(self):
        token = set_request_id("abc")
        assert get_request_id() == "abc"
        reset_request_id(token)
        assert get_request_id() == ""


class TestSetupLogging:

    def test_installs_json_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="DEBUG", json_format=True)

            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert logging.getLogger("openai").level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)


class TestLogHelpers:

    def test_log_with_context_attaches_extra(self, caplog):
        logger = logging.getLogger("test.context")
        with caplog.at_level(logging.INFO, logger="test.context"):
            log_with_context(logger, "INFO", "Processing", category="coding")

        assert caplog.records[-1].extra_data == {"category": "coding"}

    def test_log_with_context_respects_level(self, caplog):
        logger = logging.getLogger("test.quiet")
        with caplog.at_level(logging.WARNING, logger="test.quiet"):
            log_with_context(logger, "INFO", "ignored", provider="groq")

        assert caplog.records == []

    @pytest.mark.asyncio
    async def test_log_performance_reraises(self, caplog):
        logger = logging.getLogger("test.perf")

        @log_performance(logger, "op")
        async def failing():
            raise ValueError("nope")

        with caplog.at_level(logging.WARNING, logger="test.perf"):
            with pytest.raises(ValueError):
                await failing()

        assert caplog.records[-1].extra_data["error_type"] == "ValueError"

    def test_log_performance_rejects_sync(self):
        with pytest.raises(TypeError):
            log_performance(logging.getLogger("x"), "op")(lambda: None)
