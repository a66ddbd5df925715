from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from inboxkit.domain.keys import (
    activity_dedup_key,
    approver_dedup_key,
    decision_dedup_key,
    follow_request_idempotency_key,
    thread_key,
    type_key_prefix,
)
from inboxkit.domain.model import EntityRef, RelationshipKind, RelationshipScope
from inboxkit.domain.pagination import decode_cursor, encode_cursor, is_after_cursor
from tests.helpers.inbox import BASE_TIME, thing, user


def test_entity_identity_ignores_case_whitespace_and_kind() -> None:
    left = EntityRef(kind="user", type=" Profile ", id="ALICE", display="Alice")
    right = EntityRef(kind="group", type="profile", id="alice ")

    assert left.key == ("profile", "alice")
    assert left.same_as(right)
    assert not left.same_as(None)


def test_type_key_prefix() -> None:
    assert type_key_prefix("Post.Created") == "post"
    assert type_key_prefix("comment") == "comment"
    assert type_key_prefix(None) == ""


def test_activity_dedup_key_uses_normalized_recipient() -> None:
    key = activity_dedup_key("act-9", EntityRef(kind="user", type="Profile", id="Bob"))

    assert key == "activity:act-9:recipient:profile|bob"


def test_thread_key_prefers_first_target_over_actor() -> None:
    post = thing("Post", "P1")

    assert thread_key(post, user("alice"), "post.liked") == "target:post:p1:type:post"
    assert thread_key(None, user("Alice"), "post.liked") == "actor:profile:alice:type:post"


def test_follow_request_keys() -> None:
    idempotency = follow_request_idempotency_key(
        user("Bob"), user("alice"), RelationshipKind.SUBSCRIBE, RelationshipScope.OWNER_ONLY
    )

    assert idempotency == "profile|bob:profile|alice:subscribe:owner_only"
    approver = approver_dedup_key("req-1", user("Carol"))
    assert approver == "follow-request:req-1:approver:profile|carol"
    assert decision_dedup_key("req-1", user("bob")) == "follow-request:req-1:result:profile|bob"


def test_cursor_round_trip_normalizes_to_utc() -> None:
    local = BASE_TIME.astimezone(timezone(timedelta(hours=2)))

    decoded = decode_cursor(encode_cursor(local, "id-0007"))

    assert decoded == (BASE_TIME, "id-0007")
    assert decoded is not None
    assert decoded[0].tzinfo is not None


def test_decode_cursor_rejects_garbage() -> None:
    assert decode_cursor("not a cursor!") is None
    assert decode_cursor("") is None
    assert decode_cursor(encode_cursor(BASE_TIME, "x")[:-4]) is None


def test_is_after_cursor_orders_newest_first_then_id_descending() -> None:
    cursor = (BASE_TIME, "id-0005")

    assert is_after_cursor(BASE_TIME - timedelta(seconds=1), "id-0009", cursor)
    assert is_after_cursor(BASE_TIME, "id-0004", cursor)
    assert not is_after_cursor(BASE_TIME, "id-0005", cursor)
    assert not is_after_cursor(BASE_TIME, "id-0006", cursor)
    assert not is_after_cursor(datetime(2030, 1, 1, tzinfo=UTC), "id-0001", cursor)
