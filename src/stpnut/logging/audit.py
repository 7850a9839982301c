"""Structured JSON logging for the pnut.io client.

This module provides:
- An opt-in stderr handler (JSON or console) for the "stpnut" logger
- Secret redaction for bearer tokens, client secrets and access tokens
- Structured log events for API calls, stream operations, realtime
  connections and notification normalization
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import EventDict, WrappedLogger

# Patterns for secret redaction
SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Authorization headers, including the scheme
    (
        re.compile(r"(authorization[=:]\s*['\"]?)((?:Bearer\s+)?[^\s'\"]+)", re.IGNORECASE),
        r"\1[REDACTED]",
    ),
    # Bearer tokens elsewhere
    (re.compile(r"(Bearer\s+)([A-Za-z0-9._~+/=-]+)", re.IGNORECASE), r"\1[REDACTED]"),
    # Form-encoded or key=value credentials
    (
        re.compile(r"((?:client_secret|access_token)[=:]\s*['\"]?)([^\s&'\"]+)"),
        r"\1[REDACTED]",
    ),
    # Generic tokens that look like they might be sensitive
    (re.compile(r"(token[=:]\s*['\"]?)([A-Za-z0-9_-]{20,})"), r"\1[REDACTED]"),
]

# Dict keys whose values are always secret
SECRET_KEYS = frozenset({"client_secret", "access_token", "token", "authorization"})


def redact_secrets(value: Any) -> Any:
    """Redact sensitive values from a string, dict, or list.

    Applies key-based redaction for known credential fields and
    pattern-based redaction for bearer tokens and inline credentials.

    Args:
        value: Value to redact. Can be str, dict, list, or other.

    Returns:
        Value with sensitive data redacted
    """
    if isinstance(value, str):
        result = value
        for pattern, replacement in SECRET_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    if isinstance(value, dict):
        return {
            k: "[REDACTED]"
            if isinstance(k, str) and k.lower() in SECRET_KEYS and v
            else redact_secrets(v)
            for k, v in value.items()
        }

    if isinstance(value, list):
        return [redact_secrets(item) for item in value]

    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor that redacts secrets from log events."""
    return redact_secrets(event_dict)


# Name of the handler installed by configure_logging, so a second call replaces it
HANDLER_NAME = "stpnut"


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Send stpnut's log events to stderr. Opt-in for the host application.

    The library never calls this itself. Until a host configures logging
    (with this function or its own handlers on the "stpnut" logger), the
    library's events are dropped by the stdlib NullHandler attached to
    the package logger.

    Installs one stderr handler on the "stpnut" logger with a structlog
    ProcessorFormatter that adds:
    - Timestamp in ISO format
    - Log level
    - Secret redaction
    - Exception formatting

    Calling it again replaces the previous handler.

    Args:
        verbose: If True, enable DEBUG level. Otherwise INFO.
        json_output: If True, output JSON. Otherwise use console format.
    """
    level = logging.DEBUG if verbose else logging.INFO

    renderer: Callable[..., Any]
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        # Records from plain logging.getLogger(__name__) calls
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _redact_processor,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger("stpnut")
    for existing in list(package_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger backed by a stdlib logger.

    Events are filtered by the stdlib logger's level and redacted before
    they reach any handler, so nothing is emitted unless the host has
    configured logging for the "stpnut" hierarchy.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.wrap_logger(
        logging.getLogger(name or "stpnut"),
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _redact_processor,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
    )


# Structured log event helpers


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
) -> None:
    """Log a completed HTTP round trip.

    Args:
        method: HTTP method
        path: API path (no query string, no body)
        status_code: HTTP status returned
        duration_ms: Round-trip duration in milliseconds
    """
    log = get_logger("stpnut.http")
    log.debug(
        "api_request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
    )


def log_api_error(
    method: str,
    path: str,
    code: int | None,
    message: str,
) -> None:
    """Log an error envelope returned by the API."""
    log = get_logger("stpnut.http")
    log_func = log.info if code == 404 else log.warning
    log_func(
        "api_error",
        method=method,
        path=path,
        code=code,
        error_message=message,
    )


def log_authenticated(client_id: str, token_hint: str) -> None:
    """Log a successful client-credentials exchange.

    Args:
        client_id: The app's client id
        token_hint: Masked form of the received access token
    """
    log = get_logger("stpnut.auth")
    log.info(
        "authenticated",
        client_id=client_id,
        token_hint=token_hint,
    )


def log_stream_operation(
    operation: str,
    key: str | None,
    outcome: str,
) -> None:
    """Log a stream CRUD operation.

    Args:
        operation: Operation name (e.g. 'create_stream')
        key: Stream key
        outcome: 'success', 'not_found', 'created' or 'failed'
    """
    log = get_logger("stpnut.streams")
    log_func = log.warning if outcome == "failed" else log.info
    log_func(
        "stream_operation",
        operation=operation,
        key=key,
        outcome=outcome,
    )


def log_realtime_event(event: str, url: str) -> None:
    """Log a realtime connection lifecycle event.

    Args:
        event: 'open', 'close' or 'error'
        url: WebSocket URL, already passed through redact_secrets
    """
    log = get_logger("stpnut.realtime")
    log_func = log.warning if event == "error" else log.info
    log_func("realtime_event", realtime_event=event, url=url)


def log_notification(event_type: str | None, kind: str | None) -> None:
    """Log the outcome of normalizing one envelope.

    Args:
        event_type: The envelope's meta.type
        kind: Resulting notification kind, or None when suppressed
    """
    log = get_logger("stpnut.notifications")
    log.debug(
        "notification_normalized",
        event_type=event_type,
        kind=kind,
        suppressed=kind is None,
    )
