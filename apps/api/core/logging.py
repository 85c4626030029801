"""Structured logging with structlog.

Configures JSON logging for production and colorized console for dev.
The statement importer logs every stage through a logger bound to the
document and organisation, so one import can be followed end to end:

    {"event": "rows_parsed", "document_id": "...", "org_id": "...",
     "rows": 120, "strategy": "strict", ...}
"""

import logging
import sys

import structlog

# supabase-py talks PostgREST/Storage through httpx, which logs every request
# at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logging(log_level: str = "INFO", json_output: bool = True, stream=None) -> None:
    """Configure structured logging for the API, the worker and the CLI.

    Args:
        log_level: Python log level string (DEBUG, INFO, WARNING, ERROR).
        json_output: If True, use JSON renderer (production). If False,
                     use colorized console renderer (development).
        stream: Where log lines go; stdout unless given.
    """
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=stream or sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logging_for_environment(environment: str, log_level: str = "INFO") -> None:
    """JSON everywhere except local development."""
    setup_logging(log_level=log_level, json_output=environment != "development")
