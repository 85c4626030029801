"""Tests for structured logging setup."""

import logging

import structlog

from apps.api.core.logging import setup_logging, setup_logging_for_environment


class TestStructuredLogging:
    """Test structlog outputs structured JSON."""

    def test_setup_logging_configures_structlog(self):
        """After setup, structlog.get_logger() should return a bound logger."""
        setup_logging(log_level="DEBUG", json_output=True)
        logger = structlog.get_logger()
        assert logger is not None

    def test_setup_logging_dev_mode(self):
        """Dev mode should configure console renderer without errors."""
        setup_logging(log_level="DEBUG", json_output=False)
        logger = structlog.get_logger()
        assert logger is not None

    def test_http_client_loggers_are_quieted(self):
        setup_logging(log_level="DEBUG", json_output=True)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_environment_selects_renderer(self):
        setup_logging_for_environment("production", "INFO")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

        setup_logging_for_environment("development", "INFO")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
