"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from inboxkit.adapters.memory import InMemoryRelationshipService
from inboxkit.adapters.sqlalchemy import SqlAlchemyFollowRequestStore, SqlAlchemyInboxStore
from inboxkit.adapters.sqlalchemy.migrations import upgrade_head
from inboxkit.adapters.sqlalchemy.session import is_started, session_factory, startup
from inboxkit.config import get_notification_config
from inboxkit.domain.model import InboxItemStatus, InboxQuery
from inboxkit.domain.notifications import InboxNotificationService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from inboxkit.config import NotificationConfig
    from inboxkit.domain.model import EntityRef, FollowRequest, InboxItem, InboxPage
    from inboxkit.domain.policies import GovernancePolicy, RecipientExpansionPolicy
    from inboxkit.domain.ports import RelationshipService


log = getLogger(__name__)


async def build_notification_service(
    *,
    sessions: async_sessionmaker[AsyncSession] | None = None,
    relationships: RelationshipService | None = None,
    governance: GovernancePolicy | None = None,
    recipient_expansion: RecipientExpansionPolicy | None = None,
    config: NotificationConfig | None = None,
) -> InboxNotificationService:
    """Wire the notification service onto the SQLAlchemy stores.

    The relationship graph is owned by the host application; without one an
    empty in-memory graph is used, which is enough for inbox maintenance.
    """

    if sessions is None:
        if not is_started():
            await startup()
        sessions = session_factory()
    effective_config = config or get_notification_config()
    return InboxNotificationService(
        inbox_store=SqlAlchemyInboxStore(sessions),
        follow_request_store=SqlAlchemyFollowRequestStore(sessions),
        relationships=relationships or InMemoryRelationshipService(),
        governance=governance,
        recipient_expansion=recipient_expansion,
        fanout_concurrency=effective_config.fanout_concurrency,
    )


async def upgrade_database(*, database_uri: str | None = None) -> None:
    """Bring the configured database schema up to date."""

    log.info("Upgrading database schema to head")
    await upgrade_head(database_uri=database_uri)


async def list_inbox(
    *,
    tenant_id: str,
    recipient: EntityRef,
    status: InboxItemStatus | None = None,
    limit: int | None = None,
    cursor: str | None = None,
    service: InboxNotificationService | None = None,
) -> InboxPage:
    """Return one page of a recipient's inbox, newest activity first."""

    effective_service = service or await build_notification_service()
    query = InboxQuery(
        tenant_id=tenant_id,
        recipients=[recipient],
        status=status,
        limit=limit or get_notification_config().default_query_limit,
        cursor=cursor,
    )
    page = await effective_service.query_inbox(query)
    log.info(
        "Listed %s inbox items for %s (more=%s)",
        len(page.items),
        recipient,
        page.next_cursor is not None,
    )
    return page


async def mark_item_read(
    *, tenant_id: str, item_id: str, service: InboxNotificationService | None = None
) -> InboxItem:
    effective_service = service or await build_notification_service()
    return await effective_service.mark_read(tenant_id, item_id)


async def archive_item(
    *, tenant_id: str, item_id: str, service: InboxNotificationService | None = None
) -> InboxItem:
    effective_service = service or await build_notification_service()
    return await effective_service.archive(tenant_id, item_id)


async def list_pending_requests(
    *, tenant_id: str, target: EntityRef, service: InboxNotificationService | None = None
) -> list[FollowRequest]:
    effective_service = service or await build_notification_service()
    return await effective_service.list_pending_requests(tenant_id, target)
