"""Async SQLAlchemy stores for inbox items and follow requests."""

from __future__ import annotations

import logging
from copy import deepcopy
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from inboxkit.adapters.sqlalchemy.mappings import follow_request_table, inbox_item_table
from inboxkit.domain.keys import entity_key_string
from inboxkit.domain.model import FollowRequest, FollowRequestStatus, InboxItem, InboxPage
from inboxkit.domain.normalization import normalize_tenant_id
from inboxkit.domain.pagination import decode_cursor, encode_cursor

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from inboxkit.domain.model import EntityRef, InboxItemStatus, InboxQuery

log = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyInboxStore:
    """Inbox store backed by the ``inbox_item`` table.

    Every call runs in its own short transaction. The unique constraint on
    ``(tenant_id, recipient_key, dedup_key)`` settles concurrent inserts: the
    loser rolls back and gets the stored winner back from ``upsert``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._now = clock or _utc_now

    async def get_by_id(self, tenant_id: str, item_id: str) -> InboxItem | None:
        stmt = select(inbox_item_table).where(
            inbox_item_table.c.tenant_id == normalize_tenant_id(tenant_id),
            inbox_item_table.c.id == item_id,
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return _row_to_item(row) if row is not None else None

    async def find_by_dedup_key(
        self, tenant_id: str, recipient: EntityRef, dedup_key: str
    ) -> InboxItem | None:
        return await self._find_by(tenant_id, recipient, inbox_item_table.c.dedup_key, dedup_key)

    async def find_by_thread_key(
        self, tenant_id: str, recipient: EntityRef, thread_key: str
    ) -> InboxItem | None:
        return await self._find_by(tenant_id, recipient, inbox_item_table.c.thread_key, thread_key)

    async def _find_by(
        self, tenant_id: str, recipient: EntityRef, column: Any, value: str
    ) -> InboxItem | None:
        stmt = (
            select(inbox_item_table)
            .where(
                inbox_item_table.c.tenant_id == normalize_tenant_id(tenant_id),
                inbox_item_table.c.recipient_key == entity_key_string(recipient),
                column == value.strip(),
            )
            .order_by(inbox_item_table.c.sort_at.desc(), inbox_item_table.c.id.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return _row_to_item(row) if row is not None else None

    async def upsert(self, item: InboxItem) -> InboxItem:
        if not item.id:
            raise ValueError("Inbox item must have an id before it is stored")
        values = _item_values(item)
        try:
            await _insert_or_update(self._session_factory, inbox_item_table, values)
        except IntegrityError:
            if not item.dedup_key:
                raise
            winner = await self.find_by_dedup_key(item.tenant_id, item.recipient, item.dedup_key)
            if winner is None:
                raise
            log.debug("Dedup key %s already stored as %s", item.dedup_key, winner.id)
            return winner
        return deepcopy(item)

    async def query(self, query: InboxQuery) -> InboxPage:
        table = inbox_item_table
        stmt = select(table).where(table.c.tenant_id == normalize_tenant_id(query.tenant_id))
        if query.recipients:
            stmt = stmt.where(
                table.c.recipient_key.in_([entity_key_string(r) for r in query.recipients])
            )
        if query.status is not None:
            stmt = stmt.where(table.c.status == query.status)
        if query.kind is not None:
            stmt = stmt.where(table.c.kind == query.kind)
        if query.since is not None:
            stmt = stmt.where(table.c.created_at >= query.since)
        if query.until is not None:
            stmt = stmt.where(table.c.created_at < query.until)

        cursor = decode_cursor(query.cursor) if query.cursor else None
        if cursor is not None:
            cursor_at, cursor_id = cursor
            stmt = stmt.where(
                or_(
                    table.c.sort_at < cursor_at,
                    and_(table.c.sort_at == cursor_at, table.c.id < cursor_id),
                )
            )

        stmt = stmt.order_by(table.c.sort_at.desc(), table.c.id.desc()).limit(query.limit + 1)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()

        items = [_row_to_item(row) for row in rows]
        next_cursor: str | None = None
        if len(items) > query.limit:
            items = items[: query.limit]
            last = items[-1]
            last_at = last.last_activity_at
            if last_at is None:
                raise ValueError(f"Inbox item {last.id} has no timestamps")
            next_cursor = encode_cursor(last_at, last.id or "")
        return InboxPage(items=items, next_cursor=next_cursor)

    async def update_status(
        self, tenant_id: str, item_id: str, status: InboxItemStatus
    ) -> InboxItem | None:
        now = self._now()
        stmt = (
            update(inbox_item_table)
            .where(
                inbox_item_table.c.tenant_id == normalize_tenant_id(tenant_id),
                inbox_item_table.c.id == item_id,
            )
            .values(status=status, updated_at=now, sort_at=now)
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return None
        return await self.get_by_id(tenant_id, item_id)


class SqlAlchemyFollowRequestStore:
    """Follow-request store backed by the ``follow_request`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, tenant_id: str, request_id: str) -> FollowRequest | None:
        stmt = select(follow_request_table).where(
            follow_request_table.c.tenant_id == normalize_tenant_id(tenant_id),
            follow_request_table.c.id == request_id,
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return _row_to_request(row) if row is not None else None

    async def find_by_idempotency_key(
        self, tenant_id: str, idempotency_key: str
    ) -> FollowRequest | None:
        stmt = select(follow_request_table).where(
            follow_request_table.c.tenant_id == normalize_tenant_id(tenant_id),
            follow_request_table.c.idempotency_key == idempotency_key.strip(),
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).mappings().first()
        return _row_to_request(row) if row is not None else None

    async def upsert(self, request: FollowRequest) -> FollowRequest:
        if not request.id:
            raise ValueError("Follow request must have an id before it is stored")
        try:
            await _insert_or_update(
                self._session_factory, follow_request_table, _request_values(request)
            )
        except IntegrityError:
            if not request.idempotency_key:
                raise
            winner = await self.find_by_idempotency_key(
                request.tenant_id, request.idempotency_key
            )
            if winner is None:
                raise
            log.debug(
                "Idempotency key %s already stored as %s", request.idempotency_key, winner.id
            )
            return winner
        return deepcopy(request)

    async def query_pending_for_target(
        self, tenant_id: str, target: EntityRef
    ) -> list[FollowRequest]:
        stmt = (
            select(follow_request_table)
            .where(
                follow_request_table.c.tenant_id == normalize_tenant_id(tenant_id),
                follow_request_table.c.target_key == entity_key_string(target),
                follow_request_table.c.status == FollowRequestStatus.PENDING,
            )
            .order_by(follow_request_table.c.created_at.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [_row_to_request(row) for row in rows]


async def _insert_or_update(
    session_factory: async_sessionmaker[AsyncSession],
    table: Table,
    values: dict[str, Any],
) -> None:
    key = and_(table.c.tenant_id == values["tenant_id"], table.c.id == values["id"])
    async with session_factory() as session, session.begin():
        existing = await session.scalar(select(table.c.id).where(key))
        if existing is None:
            await session.execute(insert(table).values(**values))
        else:
            await session.execute(update(table).where(key).values(**values))


def _item_values(item: InboxItem) -> dict[str, Any]:
    sort_at = item.last_activity_at
    if sort_at is None:
        raise ValueError(f"Inbox item {item.id} has no timestamps")
    return {
        "tenant_id": normalize_tenant_id(item.tenant_id),
        "id": item.id,
        "recipient_key": entity_key_string(item.recipient),
        "recipient": item.recipient,
        "kind": item.kind,
        "event": item.event,
        "title": item.title,
        "body": item.body,
        "targets": list(item.targets),
        "data": item.data,
        "status": item.status,
        "dedup_key": item.dedup_key,
        "thread_key": item.thread_key,
        "thread_count": item.thread_count,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
        "sort_at": sort_at,
    }


def _row_to_item(row: Mapping[str, Any]) -> InboxItem:
    return InboxItem(
        tenant_id=row["tenant_id"],
        id=row["id"],
        recipient=row["recipient"],
        kind=row["kind"],
        event=row["event"],
        title=row["title"],
        body=row["body"],
        targets=row["targets"],
        data=row["data"],
        status=row["status"],
        dedup_key=row["dedup_key"],
        thread_key=row["thread_key"],
        thread_count=row["thread_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _request_values(request: FollowRequest) -> dict[str, Any]:
    return {
        "tenant_id": normalize_tenant_id(request.tenant_id),
        "id": request.id,
        "requester": request.requester,
        "target_key": entity_key_string(request.target),
        "target": request.target,
        "requested_kind": request.requested_kind,
        "scope": request.scope,
        "filter": request.filter,
        "idempotency_key": request.idempotency_key,
        "status": request.status,
        "created_at": request.created_at,
        "decided_by": request.decided_by,
        "decided_at": request.decided_at,
        "decision_reason": request.decision_reason,
    }


def _row_to_request(row: Mapping[str, Any]) -> FollowRequest:
    return FollowRequest(
        tenant_id=row["tenant_id"],
        id=row["id"],
        requester=row["requester"],
        target=row["target"],
        requested_kind=row["requested_kind"],
        scope=row["scope"],
        filter=row["filter"],
        idempotency_key=row["idempotency_key"],
        status=row["status"],
        created_at=row["created_at"],
        decided_by=row["decided_by"],
        decided_at=row["decided_at"],
        decision_reason=row["decision_reason"],
    )
