"""Notification model and app stream payload normalization."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from stpnut.logging import log_notification

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Kinds of user-facing notifications derived from stream events."""

    REPOST = "repost"
    MENTION = "mention"
    BOOKMARK = "bookmark"
    FOLLOW = "follow"


class EventType(str, Enum):
    """App stream event types that can produce a notification."""

    POST = "post"
    BOOKMARK = "bookmark"
    FOLLOW = "follow"


class Notification(BaseModel):
    """Normalized push notification built from an app stream payload.

    A notification is either fully built or not produced at all; the
    normalizers return None for deleted or malformed payloads.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    kind: NotificationKind = Field(..., description="What happened")
    message: str = Field(..., description="Human-readable text for display")
    user_ids: list[str] = Field(
        ...,
        min_length=1,
        description="Recipients, in payload order",
    )
    object_id: str | None = Field(
        default=None,
        description="Originating post id or user id, as sent by the API",
    )

    @classmethod
    def from_app_stream_payload(
        cls,
        payload: Any,
    ) -> Notification | None:
        """Create a notification from an app stream payload.

        Args:
            payload: Raw envelope ({meta, data} or {meta, post}).

        Returns:
            Notification, or None when the payload produces none.
        """
        return normalize_notification(payload)


def _dig(obj: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None at the first missing level."""
    for key in keys:
        if not isinstance(obj, Mapping):
            return None
        obj = obj.get(key)
    return obj


def _mapping(obj: Any) -> Mapping[str, Any] | None:
    return obj if isinstance(obj, Mapping) else None


def _object_id(value: Any) -> str | int | None:
    """Return value if it can be an API object id, else None."""
    if isinstance(value, bool) or not isinstance(value, str | int):
        return None
    return value


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def normalize_post(post: Mapping[str, Any] | None) -> Notification | None:
    """Create a repost or mention notification from a post.

    Args:
        post: Post object from a "post" event.

    Returns:
        Notification of kind repost or mention, or None.
    """
    if not isinstance(post, Mapping):
        return None

    username = _text(_dig(post, "user", "username"))
    if username is None:
        return None

    original = post.get("repost_of")
    if original:
        text = _text(_dig(original, "content", "text"))
        reposted_user = _object_id(_dig(original, "user", "id"))
        if text is None or reposted_user is None:
            return None
        return Notification(
            kind=NotificationKind.REPOST,
            message=f"@{username} reposted: {text}",
            user_ids=[reposted_user],
            object_id=_object_id(post.get("id")),
        )

    mentions = _dig(post, "content", "entities", "mentions")
    if not isinstance(mentions, list):
        return None

    ids = [
        mention_id
        for mention_id in (_object_id(_dig(mention, "id")) for mention in mentions)
        if mention_id is not None
    ]
    if not ids:
        return None

    text = _text(_dig(post, "content", "text"))
    if text is None:
        return None

    return Notification(
        kind=NotificationKind.MENTION,
        message=f"@{username} mentioned you: {text}",
        user_ids=ids,
        object_id=_object_id(post.get("id")),
    )


def normalize_bookmark(data: Mapping[str, Any] | None) -> Notification | None:
    """Create a bookmark notification.

    Args:
        data: {user, post} payload of a "bookmark" event.

    Returns:
        Notification of kind bookmark, or None.
    """
    user = _mapping(_dig(data, "user"))
    post = _mapping(_dig(data, "post"))
    if user is None or post is None:
        return None

    username = _text(user.get("username"))
    text = _text(_dig(post, "content", "text"))
    author = _object_id(_dig(post, "user", "id"))
    if username is None or text is None or author is None:
        return None

    return Notification(
        kind=NotificationKind.BOOKMARK,
        message=f"@{username} favorited: {text}",
        user_ids=[author],
        object_id=_object_id(user.get("id")),
    )


def normalize_follow(data: Mapping[str, Any] | None) -> Notification | None:
    """Create a follow notification.

    Args:
        data: {user, followed_user} payload of a "follow" event.

    Returns:
        Notification of kind follow, or None.
    """
    user = _mapping(_dig(data, "user"))
    followed = _mapping(_dig(data, "followed_user"))
    if user is None or followed is None:
        return None

    username = _text(user.get("username"))
    followed_id = _object_id(followed.get("id"))
    if username is None or followed_id is None:
        return None

    # The API sends a single space for users without a display name
    name = _text(user.get("name"))
    if name and name != " ":
        display_name = f"{name} (@{username})"
    else:
        display_name = f"@{username}"

    return Notification(
        kind=NotificationKind.FOLLOW,
        message=f"{display_name} started following you",
        user_ids=[followed_id],
        object_id=_object_id(user.get("id")),
    )


# Post events carry their payload under "post" instead of "data"
_HANDLERS: dict[EventType, tuple[str, Callable[[Any], Notification | None]]] = {
    EventType.POST: ("post", normalize_post),
    EventType.BOOKMARK: ("data", normalize_bookmark),
    EventType.FOLLOW: ("data", normalize_follow),
}


def normalize_notification(envelope: Any) -> Notification | None:
    """Normalize an app stream envelope to a Notification.

    Deleted events, envelopes without meta or meta.type, unknown event
    types and payloads of the wrong shape (e.g. a decoded JSON array)
    produce no notification.

    Args:
        envelope: Raw {meta, data} or {meta, post} envelope.

    Returns:
        Notification, or None when the envelope produces none.
    """
    if not isinstance(envelope, Mapping):
        return None

    meta = envelope.get("meta")
    if not isinstance(meta, Mapping):
        return None

    raw_type = meta.get("type")
    if meta.get("is_deleted") is True or not raw_type or not isinstance(raw_type, str):
        log_notification(_text(raw_type), None)
        return None

    try:
        event_type = EventType(raw_type)
    except ValueError:
        logger.debug("Ignoring unsupported event type: %s", raw_type)
        log_notification(raw_type, None)
        return None

    payload_key, handler = _HANDLERS[event_type]
    notification = handler(envelope.get(payload_key))

    log_notification(raw_type, notification.kind.value if notification else None)
    return notification
