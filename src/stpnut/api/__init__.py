"""pnut.io API client, realtime monitor and notification normalization."""

from stpnut.api.auth import (
    InvalidConfiguration,
    MissingToken,
    mask_token,
    request_access_token,
)
from stpnut.api.client import (
    ApiResponse,
    Client,
    StreamParams,
    Unauthenticated,
    ensure_keys,
)
from stpnut.api.http import (
    API_BASE_URL,
    ApiError,
    InvalidParameters,
    PnutError,
    RequestExecutor,
    TransportError,
)
from stpnut.api.notifications import (
    EventType,
    Notification,
    NotificationKind,
    normalize_bookmark,
    normalize_follow,
    normalize_notification,
    normalize_post,
)
from stpnut.api.realtime import (
    MonitorEvent,
    RealtimeMonitor,
    monitor,
)

__all__ = [
    "API_BASE_URL",
    "ApiError",
    "ApiResponse",
    "Client",
    "EventType",
    "InvalidConfiguration",
    "InvalidParameters",
    "MissingToken",
    "MonitorEvent",
    "Notification",
    "NotificationKind",
    "PnutError",
    "RealtimeMonitor",
    "RequestExecutor",
    "StreamParams",
    "TransportError",
    "Unauthenticated",
    "ensure_keys",
    "mask_token",
    "monitor",
    "normalize_bookmark",
    "normalize_follow",
    "normalize_notification",
    "normalize_post",
    "request_access_token",
]
