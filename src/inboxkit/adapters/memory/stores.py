"""In-memory inbox and follow-request stores.

Records are copied on the way in and on the way out so callers can never
mutate stored state behind the store's back. Each ``upsert`` runs without
awaiting, which makes the dedup/idempotency check and the write atomic with
respect to other coroutines on the same event loop.
"""

from __future__ import annotations

from copy import deepcopy
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from inboxkit.domain.model import FollowRequestStatus, InboxPage
from inboxkit.domain.normalization import normalize_tenant_id
from inboxkit.domain.pagination import decode_cursor, encode_cursor, is_after_cursor

if TYPE_CHECKING:
    from collections.abc import Callable

    from inboxkit.domain.model import (
        EntityKey,
        EntityRef,
        FollowRequest,
        InboxItem,
        InboxItemStatus,
        InboxQuery,
    )

type _IndexKey = tuple[str, EntityKey, str]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _sort_at(item: InboxItem) -> datetime:
    timestamp = item.last_activity_at
    if timestamp is None:
        raise ValueError(f"Inbox item {item.id} has no timestamps")
    return timestamp


class InMemoryInboxStore:
    """Inbox store keeping items in dictionaries keyed by tenant and id."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._items: dict[str, dict[str, InboxItem]] = {}
        self._dedup_index: dict[_IndexKey, str] = {}
        self._thread_index: dict[_IndexKey, str] = {}
        self._now = clock or _utc_now

    async def get_by_id(self, tenant_id: str, item_id: str) -> InboxItem | None:
        item = self._items.get(normalize_tenant_id(tenant_id), {}).get(item_id)
        return deepcopy(item) if item is not None else None

    async def find_by_dedup_key(
        self, tenant_id: str, recipient: EntityRef, dedup_key: str
    ) -> InboxItem | None:
        item_id = self._dedup_index.get(_index_key(tenant_id, recipient, dedup_key))
        return await self.get_by_id(tenant_id, item_id) if item_id else None

    async def find_by_thread_key(
        self, tenant_id: str, recipient: EntityRef, thread_key: str
    ) -> InboxItem | None:
        item_id = self._thread_index.get(_index_key(tenant_id, recipient, thread_key))
        return await self.get_by_id(tenant_id, item_id) if item_id else None

    async def upsert(self, item: InboxItem) -> InboxItem:
        if not item.id:
            raise ValueError("Inbox item must have an id before it is stored")
        tenant_id = normalize_tenant_id(item.tenant_id)

        if item.dedup_key:
            dedup = _index_key(tenant_id, item.recipient, item.dedup_key)
            winner = self._dedup_index.get(dedup)
            if winner is not None and winner != item.id:
                return deepcopy(self._items[tenant_id][winner])
            self._dedup_index[dedup] = item.id

        if item.thread_key:
            self._thread_index[_index_key(tenant_id, item.recipient, item.thread_key)] = item.id

        stored = deepcopy(item)
        self._items.setdefault(tenant_id, {})[item.id] = stored
        return deepcopy(stored)

    async def query(self, query: InboxQuery) -> InboxPage:
        tenant_id = normalize_tenant_id(query.tenant_id)
        recipients = {recipient.key for recipient in query.recipients}

        matching = [
            item
            for item in self._items.get(tenant_id, {}).values()
            if _matches(item, query, recipients)
        ]
        matching.sort(key=lambda item: (_sort_at(item), item.id or ""), reverse=True)

        cursor = decode_cursor(query.cursor) if query.cursor else None
        if cursor is not None:
            matching = [
                item for item in matching if is_after_cursor(_sort_at(item), item.id or "", cursor)
            ]

        page = matching[: query.limit + 1]
        next_cursor: str | None = None
        if len(page) > query.limit:
            page = page[: query.limit]
            last = page[-1]
            next_cursor = encode_cursor(_sort_at(last), last.id or "")
        return InboxPage(items=[deepcopy(item) for item in page], next_cursor=next_cursor)

    async def update_status(
        self, tenant_id: str, item_id: str, status: InboxItemStatus
    ) -> InboxItem | None:
        item = self._items.get(normalize_tenant_id(tenant_id), {}).get(item_id)
        if item is None:
            return None
        item.status = status
        item.updated_at = self._now()
        return deepcopy(item)


class InMemoryFollowRequestStore:
    """Follow-request store with a per-tenant idempotency index."""

    def __init__(self) -> None:
        self._requests: dict[str, dict[str, FollowRequest]] = {}
        self._idempotency_index: dict[tuple[str, str], str] = {}

    async def get_by_id(self, tenant_id: str, request_id: str) -> FollowRequest | None:
        request = self._requests.get(normalize_tenant_id(tenant_id), {}).get(request_id)
        return deepcopy(request) if request is not None else None

    async def find_by_idempotency_key(
        self, tenant_id: str, idempotency_key: str
    ) -> FollowRequest | None:
        request_id = self._idempotency_index.get(
            (normalize_tenant_id(tenant_id), idempotency_key.strip())
        )
        return await self.get_by_id(tenant_id, request_id) if request_id else None

    async def upsert(self, request: FollowRequest) -> FollowRequest:
        if not request.id:
            raise ValueError("Follow request must have an id before it is stored")
        tenant_id = normalize_tenant_id(request.tenant_id)

        if request.idempotency_key:
            index_key = (tenant_id, request.idempotency_key.strip())
            winner = self._idempotency_index.get(index_key)
            if winner is not None and winner != request.id:
                return deepcopy(self._requests[tenant_id][winner])
            self._idempotency_index[index_key] = request.id

        stored = deepcopy(request)
        self._requests.setdefault(tenant_id, {})[request.id] = stored
        return deepcopy(stored)

    async def query_pending_for_target(
        self, tenant_id: str, target: EntityRef
    ) -> list[FollowRequest]:
        pending = [
            request
            for request in self._requests.get(normalize_tenant_id(tenant_id), {}).values()
            if request.status is FollowRequestStatus.PENDING and request.target.same_as(target)
        ]
        pending.sort(
            key=lambda request: request.created_at or datetime.min.replace(tzinfo=UTC),
            reverse=True,
        )
        return [deepcopy(request) for request in pending]


def _index_key(tenant_id: str, recipient: EntityRef, key: str) -> _IndexKey:
    return (normalize_tenant_id(tenant_id), recipient.key, key.strip())


def _matches(item: InboxItem, query: InboxQuery, recipients: set[EntityKey]) -> bool:
    if recipients and item.recipient.key not in recipients:
        return False
    if query.status is not None and item.status is not query.status:
        return False
    if query.kind is not None and item.kind is not query.kind:
        return False
    if query.since is not None and item.created_at is not None and item.created_at < query.since:
        return False
    return not (
        query.until is not None and item.created_at is not None and item.created_at >= query.until
    )
