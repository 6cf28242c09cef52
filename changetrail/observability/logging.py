"""Structured logging configuration using structlog.

JSON output for production, console output for development. Audit
context (actor, IP address) is sensitive, so PII redaction is on by
default.
"""

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "authorization",
    "credential",
    "credentials",
    "dsn",
    "connection_url",
    "email",
    "ip_address",
    "user_agent",
    "old_values",
    "new_values",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
DSN_PASSWORD_PATTERN = re.compile(r"(postgres(?:ql)?://[^:/@\s]+:)[^@\s]+@")


class PIIRedactor:
    """Processor that redacts PII from log events.

    Known sensitive keys are replaced outright; string values are scanned
    for e-mail addresses and DSN passwords.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact_dict(event_dict))

    def _redact_dict(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_KEYS:
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = self._redact_dict(value)
            elif isinstance(value, str):
                result[key] = self._redact_string(value)
            elif isinstance(value, list):
                result[key] = [
                    self._redact_string(item) if isinstance(item, str) else item
                    for item in value
                ]
            else:
                result[key] = value
        return result

    def _redact_string(self, value: str) -> str:
        value = DSN_PASSWORD_PATTERN.sub(r"\1[REDACTED]@", value)
        return EMAIL_PATTERN.sub("[EMAIL]", value)


class AppNameStamper:
    """Processor that adds the service name to every event."""

    def __init__(self, app_name: str) -> None:
        self._app_name = app_name

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("app", self._app_name)
        return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
    app_name: str | None = None,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "console" for development
        redact_pii: Whether to redact PII from logs
        app_name: Stamped on every event as `app` when given
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if app_name:
        processors.append(AppNameStamper(app_name))

    if redact_pii:
        processors.append(PIIRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    level_num = logging.getLevelName(level.upper())
    if not isinstance(level_num, int):
        level_num = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
