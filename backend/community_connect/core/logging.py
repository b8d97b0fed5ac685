"""
Structured logging configuration.

Provides JSON-structured logging with request IDs in production and a
readable console format in development.
"""
import logging
import re
import sys
from typing import Any

import structlog

from community_connect.core.config import Settings

# Fields to redact completely
SENSITIVE_FIELDS = (
    'password',
    'token',
    'secret',
    'session',
    'csrf',
    'authorization',
    'cookie',
    'captcha_answer',
)

EMAIL_PATTERN = re.compile(r'^([^\s@])[^\s@]*@([^\s@]+\.[^\s@]+)$')


def setup_logging(settings: Settings) -> None:
    """
    Configure structured logging for the application.

    In production: JSON format with timestamps and request IDs
    In development: Readable console format
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s" if not settings.DEBUG else '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
        level=level,
        force=True,
    )

    # Silence noisy SQLAlchemy engine logs
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.DEBUG
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # Sensitive data redaction
            redact_sensitive_data,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_sensitive_data(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Redact sensitive data from logs.

    Removes or masks:
    - Passwords, tokens and secrets
    - Session and CSRF cookies
    - Email addresses (masked, domain kept)
    """
    redacted = event_dict.copy()

    for key, value in redacted.items():
        if key == "event":
            continue
        if isinstance(key, str) and any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            redacted[key] = "***REDACTED***"
        elif isinstance(value, dict):
            redacted[key] = redact_sensitive_data(logger, method_name, value)
        elif isinstance(value, str):
            redacted[key] = redact_string(value)

    return redacted


def redact_string(value: str) -> str:
    """Mask email addresses, keeping the first character and the domain."""
    match = EMAIL_PATTERN.match(value)
    if match:
        return f"{match.group(1)}***@{match.group(2)}"
    return value


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)
