"""Client library for the pnut.io API.

Bundles the two public types of the package:

    from stpnut import Client, Notification

    async with Client(client_id, client_secret) as client:
        await client.authenticate()
        meta, stream = await client.retrieve_or_create_stream(
            {"key": "notifications", "object_types": ["post", "bookmark", "follow"]}
        )

    notification = Notification.from_app_stream_payload(payload)
"""

import logging as _stdlib_logging

from stpnut.api import (
    ApiError,
    ApiResponse,
    Client,
    InvalidConfiguration,
    InvalidParameters,
    MissingToken,
    Notification,
    NotificationKind,
    PnutError,
    RealtimeMonitor,
    StreamParams,
    TransportError,
    Unauthenticated,
    monitor,
    normalize_notification,
)
from stpnut.version import __version__

# Silent until the host configures logging
_stdlib_logging.getLogger(__name__).addHandler(_stdlib_logging.NullHandler())

__all__ = [
    "ApiError",
    "ApiResponse",
    "Client",
    "InvalidConfiguration",
    "InvalidParameters",
    "MissingToken",
    "Notification",
    "NotificationKind",
    "PnutError",
    "RealtimeMonitor",
    "StreamParams",
    "TransportError",
    "Unauthenticated",
    "__version__",
    "monitor",
    "normalize_notification",
]
