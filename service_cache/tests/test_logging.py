"""
Unit tests for shared logging configuration.
"""

import pytest
import structlog

from shared.logging import (
    add_correlation_context, add_service_context, clear_context,
    configure_logging, set_request_id
)


class TestLogging:
    """Test cases for structured logging helpers."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        """Restore structlog defaults after each test."""
        yield
        structlog.reset_defaults()
        clear_context()

    def test_single_timestamp_processor(self):
        """Test events are stamped once, in ISO format, and rendered as JSON."""
        configure_logging("cache", "info")

        processors = structlog.get_config()["processors"]
        stampers = [p for p in processors if isinstance(p, structlog.processors.TimeStamper)]

        assert len(stampers) == 1
        assert stampers[0].fmt == "iso"
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_service_context_from_logger_name(self):
        """Test the service name is taken from the dotted logger name."""
        event = add_service_context(None, "info", {"logger": "cache.ratelimit"})

        assert event["service"] == "cache"

    def test_request_id_context(self):
        """Test the request id is attached while set."""
        request_id = set_request_id("req-42")

        assert request_id == "req-42"
        assert add_correlation_context(None, "info", {})["request_id"] == "req-42"

        clear_context()
        assert "request_id" not in add_correlation_context(None, "info", {})

    def test_generated_request_id(self):
        """Test a request id is generated when none is given."""
        assert set_request_id()
