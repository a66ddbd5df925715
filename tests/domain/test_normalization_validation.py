from __future__ import annotations

from inboxkit.domain.model import EntityRef, InboxQuery, RelationshipKind
from inboxkit.domain.normalization import (
    normalize_activity,
    normalize_inbox_item,
    normalize_query,
    normalize_tenant_id,
)
from inboxkit.domain.validation import (
    INVALID_VALUE,
    MAX_COUNT,
    MAX_LENGTH,
    MAX_QUERY_LIMIT,
    MAX_TARGETS,
    MAX_VALUE,
    REQUIRED,
    validate_activity,
    validate_follow_request,
    validate_inbox_item,
    validate_query,
)
from tests.helpers.inbox import make_activity, make_item, make_request, thing, user


def test_normalize_inbox_item_trims_and_lowercases_tenant() -> None:
    item = make_item(
        recipient=EntityRef(kind=" user ", type=" profile", id=" Bob ", display="  Bob  "),
        title="  Hello  ",
        dedup_key="  dedup  ",
        thread_key="",
        tenant_id="  ACME ",
    )

    normalize_inbox_item(item)

    assert item.tenant_id == "acme"
    assert item.title == "Hello"
    assert item.dedup_key == "dedup"
    assert item.thread_key == ""
    assert (item.recipient.kind, item.recipient.type, item.recipient.id) == (
        "user",
        "profile",
        "Bob",
    )
    assert item.recipient.display == "Bob"


def test_normalization_is_idempotent() -> None:
    activity = make_activity(" act-1 ", type_key=" post.created ", summary=" hi ", tenant_id="Acme")

    normalize_activity(activity)
    first = (activity.tenant_id, activity.id, activity.type_key, activity.summary)
    normalize_activity(activity)

    assert (activity.tenant_id, activity.id, activity.type_key, activity.summary) == first
    assert first == ("acme", "act-1", "post.created", "hi")


def test_normalize_query_drops_blank_cursor() -> None:
    query = InboxQuery(tenant_id=" Acme", recipients=[user(" bob ")], cursor="   ")

    normalize_query(query)

    assert query.tenant_id == "acme"
    assert query.cursor is None
    assert query.recipients[0].id == "bob"


def test_normalize_tenant_id_handles_missing_value() -> None:
    assert normalize_tenant_id(None) == ""
    assert normalize_tenant_id(" Tenant-A ") == "tenant-a"


def test_valid_inbox_item_has_no_issues() -> None:
    assert validate_inbox_item(make_item()) == []


def test_inbox_item_validation_collects_every_issue() -> None:
    targets = [thing("post", str(n)) for n in range(51)]
    item = make_item(tenant_id="", title="x" * 501, targets=targets)
    item.body = "y" * 2001
    item.recipient.id = ""
    item.event.id = ""
    item.thread_count = 0

    issues = {(issue.code, issue.path) for issue in validate_inbox_item(item)}

    assert issues == {
        (REQUIRED, "tenant_id"),
        (REQUIRED, "recipient.id"),
        (REQUIRED, "event.id"),
        (MAX_LENGTH, "title"),
        (MAX_LENGTH, "body"),
        (MAX_COUNT, "targets"),
        (INVALID_VALUE, "thread_count"),
    }


def test_inbox_item_accepts_boundary_sizes() -> None:
    item = make_item(title="x" * 500, targets=[thing("post", str(n)) for n in range(MAX_TARGETS)])
    item.body = "y" * 2000

    assert validate_inbox_item(item) == []


def test_tenant_id_length_is_bounded() -> None:
    issues = validate_inbox_item(make_item(tenant_id="t" * 101))

    assert [(issue.code, issue.path) for issue in issues] == [(MAX_LENGTH, "tenant_id")]


def test_follow_request_kind_must_be_requestable() -> None:
    assert validate_follow_request(make_request(kind=RelationshipKind.SUBSCRIBE)) == []

    issues = validate_follow_request(make_request(kind=RelationshipKind.BLOCK))

    assert [(issue.code, issue.path) for issue in issues] == [(INVALID_VALUE, "requested_kind")]


def test_follow_request_requires_entities() -> None:
    request = make_request(requester=EntityRef(kind="", type="profile", id="bob"))

    issues = validate_follow_request(request)

    assert [issue.path for issue in issues] == ["requester.kind"]


def test_query_limit_bounds() -> None:
    low = validate_query(InboxQuery(tenant_id="acme", limit=0))
    high = validate_query(InboxQuery(tenant_id="acme", limit=MAX_QUERY_LIMIT + 1))

    assert [(issue.code, issue.path) for issue in low] == [(INVALID_VALUE, "limit")]
    assert [(issue.code, issue.path) for issue in high] == [(MAX_VALUE, "limit")]
    assert validate_query(InboxQuery(tenant_id="acme", limit=MAX_QUERY_LIMIT)) == []


def test_activity_requires_id_and_type_key() -> None:
    activity = make_activity("", type_key="")
    activity.owner = EntityRef(kind="group", type="", id="g1")

    issues = [(issue.code, issue.path) for issue in validate_activity(activity)]

    assert issues == [(REQUIRED, "id"), (REQUIRED, "type_key"), (REQUIRED, "owner.type")]
