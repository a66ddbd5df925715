"""Ports for persisting inbox items and follow requests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from inboxkit.domain.model import (
        EntityRef,
        FollowRequest,
        InboxItem,
        InboxItemStatus,
        InboxPage,
        InboxQuery,
    )


@runtime_checkable
class InboxStore(Protocol):
    """Persistence contract for inbox items.

    ``upsert`` returns the record that is stored after the call. When another
    writer already holds the same ``(tenant, recipient, dedup_key)`` under a
    different id, implementations keep that record and return it instead.
    """

    async def get_by_id(self, tenant_id: str, item_id: str) -> InboxItem | None: ...

    async def find_by_dedup_key(
        self, tenant_id: str, recipient: EntityRef, dedup_key: str
    ) -> InboxItem | None: ...

    async def find_by_thread_key(
        self, tenant_id: str, recipient: EntityRef, thread_key: str
    ) -> InboxItem | None: ...

    async def upsert(self, item: InboxItem) -> InboxItem: ...

    async def query(self, query: InboxQuery) -> InboxPage: ...

    async def update_status(
        self, tenant_id: str, item_id: str, status: InboxItemStatus
    ) -> InboxItem | None: ...


@runtime_checkable
class FollowRequestStore(Protocol):
    """Persistence contract for follow/subscribe requests.

    ``upsert`` follows the same rule as ``InboxStore.upsert`` for the
    per-tenant idempotency key.
    """

    async def get_by_id(self, tenant_id: str, request_id: str) -> FollowRequest | None: ...

    async def find_by_idempotency_key(
        self, tenant_id: str, idempotency_key: str
    ) -> FollowRequest | None: ...

    async def upsert(self, request: FollowRequest) -> FollowRequest: ...

    async def query_pending_for_target(
        self, tenant_id: str, target: EntityRef
    ) -> list[FollowRequest]: ...
