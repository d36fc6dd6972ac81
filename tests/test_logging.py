"""Tests for structured logging helpers."""

import io
import json
import logging

import pytest

from helpdesk.shared.infrastructure.logging import (
    CustomJsonFormatter,
    TraceLoggerAdapter,
    get_context_logger,
    log_latency,
)


@pytest.fixture
def stream_logger():
    """Logger writing JSON lines to an in-memory stream."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter("%(name)s %(levelname)s %(message)s", environment="staging"))

    logger = logging.getLogger("helpdesk.tests.json")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.addHandler(handler)

    def read():
        return [json.loads(line) for line in stream.getvalue().splitlines()]

    yield logger, read
    logger.removeHandler(handler)


class TestCustomJsonFormatter:
    """Tests for CustomJsonFormatter."""

    def test_standard_fields(self, stream_logger):
        """Test that records carry timestamp, environment and extras."""
        logger, read = stream_logger
        logger.info("Ticket created", extra={"ticket_id": "42"})

        record = read()[0]
        assert record["message"] == "Ticket created"
        assert record["levelname"] == "INFO"
        assert record["ticket_id"] == "42"
        assert record["environment"] == "staging"
        assert "timestamp" in record

    def test_ids_are_copied(self, stream_logger):
        """Test correlation and trace ids."""
        logger, read = stream_logger
        logger.info("Stage done", extra={"trace_id": "t-1", "correlation_id": "c-1"})

        record = read()[0]
        assert (record["trace_id"], record["correlation_id"]) == ("t-1", "c-1")

    def test_sensitive_values_are_redacted(self, stream_logger):
        """Test that secrets and tokens never reach the output."""
        logger, read = stream_logger
        logger.info("Connecting", extra={
            "db_password": "hunter2",
            "api_key": "sk-123",
            "auth_token": "abc",
            "tokens_used": "12",
        })

        record = read()[0]
        assert record["db_password"] == "***REDACTED***"
        assert record["api_key"] == "***REDACTED***"
        assert record["auth_token"] == "***REDACTED***"
        assert record["tokens_used"] == "12"


class TestContextLogger:
    """Tests for get_context_logger."""

    def test_plain_logger_without_ids(self):
        """Test that no ids means no adapter."""
        assert isinstance(get_context_logger("helpdesk.tests"), logging.Logger)

    def test_bound_ids_are_merged(self, caplog):
        """Test that bound ids reach each record next to call-site extras."""
        log = get_context_logger("helpdesk.tests", trace_id="t-7", correlation_id="c-7")
        assert isinstance(log, TraceLoggerAdapter)

        with caplog.at_level(logging.INFO, logger="helpdesk.tests"):
            log.info("Classified", extra={"category": "billing"})

        record = caplog.records[-1]
        assert record.trace_id == "t-7"
        assert record.correlation_id == "c-7"
        assert record.category == "billing"


def test_log_latency(caplog):
    """Test that the wrapped block is timed and logged even when it raises."""
    logger = logging.getLogger("helpdesk.tests.latency")

    with caplog.at_level(logging.INFO, logger="helpdesk.tests.latency"):
        with pytest.raises(ValueError):
            with log_latency(logger, "seed_database", path="seed.yaml"):
                raise ValueError("bad yaml")

    record = caplog.records[-1]
    assert record.getMessage() == "seed_database completed"
    assert record.operation == "seed_database"
    assert record.path == "seed.yaml"
    assert record.latency_ms >= 0
