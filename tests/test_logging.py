"""Tests for chargehook structured logging."""

import json
import logging

import pytest

from chargehook.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


def _last_json(caplog) -> dict:
    return json.loads(caplog.records[-1].getMessage())


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore JSON logging and an empty context around each test."""
    clear_context()
    yield
    clear_context()
    configure_logging(level="INFO", format="json")


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_text_format(self):
        """Should accept text format for development."""
        configure_logging(level="DEBUG", format="text")
        logger = get_logger("test")
        logger.debug("text format message")

    def test_configure_multiple_times(self):
        """Should handle multiple configuration calls."""
        configure_logging(level="INFO")
        configure_logging(level="DEBUG")
        get_logger("test").info("after reconfigure")

    def test_quiets_http_client_loggers(self):
        """httpx request logging should be raised to WARNING."""
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(level="LOUD")
        get_logger("test").info("still logging")


class TestJsonOutput:
    """Tests for the JSON renderer."""

    def test_structured_fields(self, caplog):
        """Keyword arguments should become JSON fields."""
        configure_logging(format="json")
        logger = get_logger("chargehook.test")

        with caplog.at_level(logging.INFO):
            logger.info("Webhook delivered", subscriber_id="sub_1", status_code=200)

        record = _last_json(caplog)
        assert record["event"] == "Webhook delivered"
        assert record["subscriber_id"] == "sub_1"
        assert record["status_code"] == 200
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_exception_rendered(self, caplog):
        """Logged exceptions should include the traceback."""
        configure_logging(format="json")
        logger = get_logger("chargehook.test")

        with caplog.at_level(logging.ERROR):
            try:
                raise ValueError("test error")
            except ValueError:
                logger.exception("Webhook delivery error")

        record = _last_json(caplog)
        assert "ValueError: test error" in record["exception"]


class TestContextBinding:
    """Tests for context variable binding."""

    def test_bound_context_is_merged(self, caplog):
        """Bound variables should appear on subsequent records."""
        configure_logging(format="json")
        bind_context(tenant_id="tenant_1", request_id="req_abc")

        with caplog.at_level(logging.INFO):
            get_logger("chargehook.test").info("Triggering event")

        record = _last_json(caplog)
        assert record["tenant_id"] == "tenant_1"
        assert record["request_id"] == "req_abc"

    def test_clear_context(self, caplog):
        """Should clear all bound context."""
        configure_logging(format="json")
        bind_context(tenant_id="tenant_1")
        clear_context()

        with caplog.at_level(logging.INFO):
            get_logger("chargehook.test").info("context cleared")

        assert "tenant_id" not in _last_json(caplog)

    def test_unbind_specific_context(self, caplog):
        """Should unbind specific context keys."""
        configure_logging(format="json")
        bind_context(subscriber_id="sub_1", chain_id="c1")
        unbind_context("chain_id")

        with caplog.at_level(logging.INFO):
            get_logger("chargehook.test").info("partial unbind")

        record = _last_json(caplog)
        assert record["subscriber_id"] == "sub_1"
        assert "chain_id" not in record


class TestModuleLevelLogger:
    """Tests for the pre-configured module-level logger."""

    def test_import_logger(self):
        """Should be able to import pre-configured logger."""
        from chargehook.logging import logger

        assert logger is not None
        logger.info("using module logger")
