"""Logging configuration."""

import logging
import sys
from typing import Any

import structlog

from waitlist.settings import settings

# Event keys whose values never reach the log output verbatim
REDACTED_KEYS = frozenset({"email", "to", "token", "verify_token", "ip"})

# Chatty third-party loggers, capped at WARNING unless we run at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def _mask(value: Any) -> Any:
    if not isinstance(value, str) or not value:
        return value
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:3]}***@{domain}"
    return f"{value[:4]}***"


def redact_sensitive(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking addresses, tokens and client IPs."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = _mask(event_dict[key])
    return event_dict


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structured logging.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: ``console`` or ``json`` (defaults to settings.log_format)
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_sensitive,
    ]
    if log_format == "json":
        processors = shared + [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared + [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn and sqlalchemy keep using stdlib logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))
    if level != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
