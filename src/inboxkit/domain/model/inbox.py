"""Inbox aggregates: per-recipient items, queries and result pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from inboxkit.domain.model.enums import InboxItemKind, InboxItemStatus

if TYPE_CHECKING:
    from datetime import datetime

    from inboxkit.domain.model.references import EntityRef, EventRef


DEFAULT_QUERY_LIMIT = 50


@dataclass(eq=False, kw_only=True)
class InboxItem:
    """One notification (or approval request) addressed to one recipient."""

    tenant_id: str
    recipient: EntityRef
    event: EventRef
    kind: InboxItemKind = InboxItemKind.NOTIFICATION
    id: str | None = None
    title: str | None = None
    body: str | None = None
    targets: list[EntityRef] = field(default_factory=list["EntityRef"])
    data: dict[str, object] | None = None
    status: InboxItemStatus = InboxItemStatus.UNREAD
    dedup_key: str | None = None
    thread_key: str | None = None
    thread_count: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def last_activity_at(self) -> datetime | None:
        """Timestamp the inbox is ordered by: last update, else creation."""
        return self.updated_at or self.created_at


@dataclass(eq=False, kw_only=True)
class InboxQuery:
    """Filter for a paginated, multi-recipient inbox listing."""

    tenant_id: str
    recipients: list[EntityRef] = field(default_factory=list["EntityRef"])
    status: InboxItemStatus | None = None
    kind: InboxItemKind | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int = DEFAULT_QUERY_LIMIT
    cursor: str | None = None


@dataclass(slots=True)
class InboxPage:
    """One page of inbox items plus the cursor to the next page, if any."""

    items: list[InboxItem] = field(default_factory=list[InboxItem])
    next_cursor: str | None = None
