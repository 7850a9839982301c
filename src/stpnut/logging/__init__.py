"""Logging module for the pnut.io client.

This module provides structured JSON logging with:
- stdlib-backed structlog loggers that stay silent until the host opts in
- Secret redaction for bearer tokens and client credentials
- Structured log events for API calls, streams and realtime connections

Usage:
    from stpnut.logging import configure_logging

    configure_logging(verbose=True)
"""

from stpnut.logging.audit import (
    configure_logging,
    get_logger,
    log_api_error,
    log_api_request,
    log_authenticated,
    log_notification,
    log_realtime_event,
    log_stream_operation,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_api_error",
    "log_api_request",
    "log_authenticated",
    "log_notification",
    "log_realtime_event",
    "log_stream_operation",
    "redact_secrets",
]
