"""Tests for app stream payload normalization."""

from __future__ import annotations

import copy
from typing import Any

import pytest
from pydantic import ValidationError

from stpnut import Notification, NotificationKind, normalize_notification
from stpnut.api.notifications import normalize_bookmark, normalize_follow, normalize_post


class TestEnvelopeFiltering:
    @pytest.mark.parametrize(
        "envelope",
        [
            None,
            {},
            {"data": {}},
            {"meta": None},
            {"meta": {}},
            {"meta": {"type": ""}},
            {"meta": {"type": "channel"}, "data": {}},
            {"meta": {"type": "message"}, "data": {"id": "1"}},
        ],
    )
    def test_no_notification(self, envelope: dict[str, Any] | None) -> None:
        assert normalize_notification(envelope) is None

    def test_deleted_bookmark_is_suppressed(self, bookmark_envelope: dict[str, Any]) -> None:
        bookmark_envelope["meta"]["is_deleted"] = True

        assert normalize_notification(bookmark_envelope) is None

    def test_deleted_false_is_processed(self, bookmark_envelope: dict[str, Any]) -> None:
        bookmark_envelope["meta"]["is_deleted"] = False

        assert normalize_notification(bookmark_envelope) is not None

    def test_class_level_entry_point(self, follow_envelope: dict[str, Any]) -> None:
        assert Notification.from_app_stream_payload(follow_envelope) == normalize_notification(
            follow_envelope
        )


class TestPost:
    def test_mention(self, mention_envelope: dict[str, Any]) -> None:
        note = normalize_notification(mention_envelope)

        assert note is not None
        assert note.kind is NotificationKind.MENTION
        assert note.message == "@alice mentioned you: @bob @carol lunch?"
        assert note.user_ids == ["2", "3"]
        assert note.object_id == "5000"

    def test_repost(self, repost_envelope: dict[str, Any]) -> None:
        note = normalize_notification(repost_envelope)

        assert note is not None
        assert note.kind is NotificationKind.REPOST
        assert note.message == "@alice reposted: Original thought"
        assert note.user_ids == ["7"]
        assert note.object_id == "5001"

    def test_payload_under_data_is_ignored(self, mention_envelope: dict[str, Any]) -> None:
        envelope = {"meta": mention_envelope["meta"], "data": mention_envelope["post"]}

        assert normalize_notification(envelope) is None

    def test_empty_mentions(self) -> None:
        envelope = {
            "meta": {"type": "post"},
            "post": {"user": {"username": "al"}, "content": {"entities": {"mentions": []}}},
        }

        assert normalize_notification(envelope) is None

    def test_missing_entities(self) -> None:
        post = {"id": "1", "user": {"username": "al"}, "content": {"text": "hi"}}

        assert normalize_post(post) is None

    def test_mentions_without_ids(self, mention_envelope: dict[str, Any]) -> None:
        mentions = mention_envelope["post"]["content"]["entities"]["mentions"]
        for mention in mentions:
            del mention["id"]

        assert normalize_notification(mention_envelope) is None

    def test_partial_mention_ids_keep_order(self, mention_envelope: dict[str, Any]) -> None:
        mention_envelope["post"]["content"]["entities"]["mentions"] = [
            {"id": "9"},
            {"text": "ghost"},
            {"id": "4"},
        ]

        note = normalize_notification(mention_envelope)

        assert note is not None
        assert note.user_ids == ["9", "4"]

    def test_numeric_ids_become_strings(self, mention_envelope: dict[str, Any]) -> None:
        mention_envelope["post"]["id"] = 5000
        mention_envelope["post"]["content"]["entities"]["mentions"] = [{"id": 2}]

        note = normalize_notification(mention_envelope)

        assert note is not None
        assert note.user_ids == ["2"]
        assert note.object_id == "5000"

    def test_missing_post(self) -> None:
        assert normalize_notification({"meta": {"type": "post"}}) is None

    def test_repost_of_deleted_post(self, repost_envelope: dict[str, Any]) -> None:
        del repost_envelope["post"]["repost_of"]["content"]

        assert normalize_notification(repost_envelope) is None

    def test_post_without_user(self, mention_envelope: dict[str, Any]) -> None:
        del mention_envelope["post"]["user"]

        assert normalize_notification(mention_envelope) is None


class TestBookmark:
    def test_bookmark(self, bookmark_envelope: dict[str, Any]) -> None:
        note = normalize_notification(bookmark_envelope)

        assert note is not None
        assert note.kind is NotificationKind.BOOKMARK
        assert note.message == "@erin favorited: Worth saving"
        assert note.user_ids == ["2"]
        assert note.object_id == "8"

    @pytest.mark.parametrize("missing", ["user", "post"])
    def test_missing_part(self, bookmark_envelope: dict[str, Any], missing: str) -> None:
        del bookmark_envelope["data"][missing]

        assert normalize_notification(bookmark_envelope) is None

    def test_missing_data(self) -> None:
        assert normalize_bookmark(None) is None
        assert normalize_notification({"meta": {"type": "bookmark"}}) is None


class TestFollow:
    def test_display_name(self) -> None:
        envelope = {
            "meta": {"type": "follow"},
            "data": {
                "user": {"username": "al", "name": "Al Smith"},
                "followed_user": {"id": "9"},
            },
        }

        note = normalize_notification(envelope)

        assert note is not None
        assert note.kind is NotificationKind.FOLLOW
        assert note.message == "Al Smith (@al) started following you"
        assert note.user_ids == ["9"]
        assert note.object_id is None

    def test_single_space_name_is_ignored(self) -> None:
        envelope = {
            "meta": {"type": "follow"},
            "data": {
                "user": {"username": "al", "name": " "},
                "followed_user": {"id": "9"},
            },
        }

        note = normalize_notification(envelope)

        assert note is not None
        assert note.message == "@al started following you"

    @pytest.mark.parametrize("name", [None, ""])
    def test_no_name(self, follow_envelope: dict[str, Any], name: str | None) -> None:
        follow_envelope["data"]["user"]["name"] = name

        note = normalize_notification(follow_envelope)

        assert note is not None
        assert note.message == "@al started following you"

    def test_object_id_is_follower(self, follow_envelope: dict[str, Any]) -> None:
        note = normalize_notification(follow_envelope)

        assert note is not None
        assert note.object_id == "12"

    @pytest.mark.parametrize("missing", ["user", "followed_user"])
    def test_missing_part(self, follow_envelope: dict[str, Any], missing: str) -> None:
        data = copy.deepcopy(follow_envelope["data"])
        del data[missing]

        assert normalize_follow(data) is None


class TestNotificationModel:
    def test_frozen(self, follow_envelope: dict[str, Any]) -> None:
        note = normalize_notification(follow_envelope)
        assert note is not None

        with pytest.raises(ValidationError):
            note.message = "changed"  # type: ignore[misc]

    def test_requires_recipients(self) -> None:
        with pytest.raises(ValidationError):
            Notification(kind=NotificationKind.FOLLOW, message="x", user_ids=[])


class TestMalformedShapes:
    @pytest.mark.parametrize(
        "envelope",
        [
            ["not", "an", "envelope"],
            "post",
            42,
            {"meta": {"type": ["post"]}, "post": {}},
        ],
    )
    def test_non_envelope(self, envelope: Any) -> None:
        assert normalize_notification(envelope) is None

    def test_post_is_not_an_object(self) -> None:
        assert normalize_notification({"meta": {"type": "post"}, "post": ["x"]}) is None

    @pytest.mark.parametrize(("part", "value"), [("user", "erin"), ("post", ["5"])])
    def test_bookmark_part_is_not_an_object(
        self, bookmark_envelope: dict[str, Any], part: str, value: Any
    ) -> None:
        bookmark_envelope["data"][part] = value

        assert normalize_notification(bookmark_envelope) is None

    @pytest.mark.parametrize(("part", "value"), [("user", "al"), ("followed_user", ["9"])])
    def test_follow_part_is_not_an_object(
        self, follow_envelope: dict[str, Any], part: str, value: Any
    ) -> None:
        follow_envelope["data"][part] = value

        assert normalize_notification(follow_envelope) is None

    def test_follow_recipient_id_is_not_scalar(self, follow_envelope: dict[str, Any]) -> None:
        follow_envelope["data"]["followed_user"]["id"] = {"x": 1}

        assert normalize_notification(follow_envelope) is None

    def test_follower_id_is_not_scalar(self, follow_envelope: dict[str, Any]) -> None:
        follow_envelope["data"]["user"]["id"] = {"x": 1}

        note = normalize_notification(follow_envelope)

        assert note is not None
        assert note.object_id is None

    def test_mention_ids_are_not_scalar(self, mention_envelope: dict[str, Any]) -> None:
        mention_envelope["post"]["content"]["entities"]["mentions"] = [{"id": {"n": 1}}]

        assert normalize_notification(mention_envelope) is None

    def test_mentions_is_not_a_list(self, mention_envelope: dict[str, Any]) -> None:
        mention_envelope["post"]["content"]["entities"]["mentions"] = {"id": "2"}

        assert normalize_notification(mention_envelope) is None

    def test_boolean_id_is_rejected(self, repost_envelope: dict[str, Any]) -> None:
        repost_envelope["post"]["repost_of"]["user"]["id"] = True

        assert normalize_notification(repost_envelope) is None

    def test_username_is_not_text(self, mention_envelope: dict[str, Any]) -> None:
        mention_envelope["post"]["user"]["username"] = {"first": "alice"}

        assert normalize_notification(mention_envelope) is None
