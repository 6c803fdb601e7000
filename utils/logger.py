"""
Structured logging for the Rentverse backend.

configure_logging() is called once by create_app; modules grab a logger with
get_logger(__name__) and log events as ``log.info("event_name", key=value)``.
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

# Substrings of keys whose values never reach the log output
REDACTED_KEYS = ("password", "token", "secret", "api_key", "otp", "code")
_KEEP_KEYS = {"event", "level", "logger", "timestamp", "error_code", "status_code"}


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _KEEP_KEYS:
            continue
        if any(part in key.lower() for part in REDACTED_KEYS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure structlog and the stdlib root logger.

    fmt="json" renders one JSON object per line (production), anything else
    renders coloured console output.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if fmt == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True, pad_event=15, sort_keys=False)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> BoundLogger:
    return structlog.get_logger(name)
