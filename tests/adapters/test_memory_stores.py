from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from inboxkit.adapters.memory import InMemoryFollowRequestStore, InMemoryInboxStore
from inboxkit.domain.model import FollowRequestStatus, InboxItemStatus, InboxQuery
from tests.helpers.inbox import BASE_TIME, TENANT, StepClock, make_item, make_request, user


def _at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


async def test_inbox_store_copies_records() -> None:
    store = InMemoryInboxStore()
    item = make_item(item_id="a", created_at=_at(0))

    await store.upsert(item)
    item.title = "mutated"
    loaded = await store.get_by_id(TENANT, "a")
    assert loaded is not None
    loaded.title = "also mutated"

    again = await store.get_by_id(TENANT, "a")
    assert again is not None
    assert again.title == "Hello"


async def test_inbox_store_requires_id() -> None:
    with pytest.raises(ValueError, match="id"):
        await InMemoryInboxStore().upsert(make_item())


async def test_inbox_store_lookups_are_scoped_per_recipient() -> None:
    store = InMemoryInboxStore()
    await store.upsert(make_item(item_id="a", created_at=_at(0), dedup_key="d", thread_key="t"))

    assert await store.find_by_dedup_key(TENANT, user("BOB"), " d ") is not None
    assert await store.find_by_thread_key(TENANT, user("bob"), "t") is not None
    assert await store.find_by_dedup_key(TENANT, user("carol"), "d") is None
    assert await store.find_by_thread_key("other", user("bob"), "t") is None


async def test_inbox_store_upsert_returns_dedup_winner() -> None:
    store = InMemoryInboxStore()
    await store.upsert(make_item(item_id="winner", created_at=_at(0), dedup_key="d"))
    late = make_item(item_id="loser", created_at=_at(1), dedup_key="d", title="Late")

    result = await store.upsert(late)

    assert result.id == "winner"
    assert await store.get_by_id(TENANT, "loser") is None


async def test_inbox_store_query_orders_by_last_activity_then_id() -> None:
    store = InMemoryInboxStore()
    await store.upsert(make_item(item_id="a", created_at=_at(1)))
    await store.upsert(make_item(item_id="b", created_at=_at(2)))
    await store.upsert(make_item(item_id="c", created_at=_at(2)))
    bumped = make_item(item_id="d", created_at=_at(0))
    bumped.updated_at = BASE_TIME + timedelta(minutes=5)
    await store.upsert(bumped)

    page = await store.query(InboxQuery(tenant_id=TENANT))

    assert [item.id for item in page.items] == ["d", "c", "b", "a"]


async def test_inbox_store_time_window_uses_created_at() -> None:
    store = InMemoryInboxStore()
    for index, item_id in enumerate("abc"):
        await store.upsert(make_item(item_id=item_id, created_at=_at(index)))

    page = await store.query(
        InboxQuery(
            tenant_id=TENANT,
            since=BASE_TIME + timedelta(minutes=1),
            until=BASE_TIME + timedelta(minutes=2),
        )
    )

    assert [item.id for item in page.items] == ["b"]


async def test_inbox_store_update_status_touches_updated_at() -> None:
    clock = StepClock()
    store = InMemoryInboxStore(clock=clock)
    await store.upsert(make_item(item_id="a", created_at=_at(0)))

    updated = await store.update_status(TENANT, "a", InboxItemStatus.ARCHIVED)

    assert updated is not None
    assert updated.status is InboxItemStatus.ARCHIVED
    assert updated.updated_at == clock.current
    assert await store.update_status(TENANT, "missing", InboxItemStatus.READ) is None


async def test_follow_request_store_idempotency_index() -> None:
    store = InMemoryFollowRequestStore()
    first = make_request(idempotency_key="k")
    first.id = "r1"
    duplicate = make_request(idempotency_key=" k ")
    duplicate.id = "r2"

    await store.upsert(first)
    winner = await store.upsert(duplicate)

    assert winner.id == "r1"
    found = await store.find_by_idempotency_key(" ACME ", "k")
    assert found is not None
    assert found.id == "r1"
    assert await store.get_by_id(TENANT, "r2") is None


async def test_follow_request_store_pending_for_target() -> None:
    store = InMemoryFollowRequestStore()
    for index, name in enumerate(["bob", "carol", "dave"]):
        request = make_request(
            requester=user(name),
            idempotency_key=name,
            created_at=BASE_TIME + timedelta(minutes=index),
        )
        request.id = f"r-{name}"
        await store.upsert(request)
    decided = await store.get_by_id(TENANT, "r-carol")
    assert decided is not None
    decided.status = FollowRequestStatus.DENIED
    await store.upsert(decided)

    pending = await store.query_pending_for_target(TENANT, user("ALICE"))

    assert [request.id for request in pending] == ["r-dave", "r-bob"]
    assert await store.query_pending_for_target(TENANT, user("bob")) == []
