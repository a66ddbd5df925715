"""Inbox notification orchestration.

``InboxNotificationService`` composes the stores, the relationship service and
the policies into two workflows:

* activity fan-out: an activity is turned into one inbox item per follower or
  subscriber allowed to see it, deduplicated and threaded per recipient;
* follow/subscribe requests: either approved automatically (edge created right
  away) or parked as pending until an approver decides.

The service holds no state between calls; everything lives in the stores.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from inboxkit.domain.errors import (
    InboxValidationError,
    InvalidStatusError,
    NotFoundError,
    PolicyViolationError,
)
from inboxkit.domain.keys import (
    activity_dedup_key,
    approver_dedup_key,
    decision_dedup_key,
    follow_request_idempotency_key,
    thread_key,
)
from inboxkit.domain.model import (
    EntityRef,
    EventRef,
    FollowRequestStatus,
    InboxItem,
    InboxItemKind,
    InboxItemStatus,
    RelationshipEdge,
    RelationshipKind,
    RelationshipQuery,
)
from inboxkit.domain.normalization import (
    normalize_activity,
    normalize_entity_ref,
    normalize_follow_request,
    normalize_inbox_item,
    normalize_query,
    normalize_tenant_id,
)
from inboxkit.domain.policies import IdentityRecipientExpansion, OpenGovernancePolicy
from inboxkit.domain.validation import (
    MAX_QUERY_LIMIT,
    MAX_TARGETS,
    validate_activity,
    validate_follow_request,
    validate_inbox_item,
    validate_query,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from inboxkit.domain.errors import ValidationIssue
    from inboxkit.domain.model import Activity, EntityKey, FollowRequest, InboxPage, InboxQuery
    from inboxkit.domain.policies import GovernancePolicy, RecipientExpansionPolicy
    from inboxkit.domain.ports import FollowRequestStore, InboxStore, RelationshipService

type IdFactory = Callable[[], str]
type Clock = Callable[[], datetime]

NOT_TARGETABLE = "NOT_TARGETABLE"
NOT_REQUESTER = "NOT_REQUESTER"

_FOLLOW_REQUEST = "follow request"
_INBOX_ITEM = "inbox item"

log = getLogger(__name__)


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class FanoutResult:
    """Outcome of fanning one activity out to inboxes."""

    selected: int = 0
    expanded: int = 0
    delivered: int = 0
    skipped: int = 0
    items: list[InboxItem] = field(default_factory=list[InboxItem])


class InboxNotificationService:
    """Entry point for inbox fan-out, inbox management and follow requests."""

    def __init__(
        self,
        *,
        inbox_store: InboxStore,
        follow_request_store: FollowRequestStore,
        relationships: RelationshipService,
        governance: GovernancePolicy | None = None,
        recipient_expansion: RecipientExpansionPolicy | None = None,
        id_factory: IdFactory | None = None,
        clock: Clock | None = None,
        fanout_concurrency: int = 1,
    ) -> None:
        if fanout_concurrency < 1:
            raise ValueError("fanout_concurrency must be at least 1")
        self._inbox_store = inbox_store
        self._request_store = follow_request_store
        self._relationships = relationships
        self._governance = governance or OpenGovernancePolicy()
        self._expansion = recipient_expansion or IdentityRecipientExpansion()
        self._new_id = id_factory or _new_id
        self._now = clock or _utc_now
        self._fanout_concurrency = fanout_concurrency

    # ------------------------------------------------------------------
    # Activity fan-out
    # ------------------------------------------------------------------

    async def on_activity_published(self, activity: Activity) -> FanoutResult:
        """Deliver ``activity`` to every follower/subscriber allowed to see it.

        Raises ``PolicyViolationError`` before anything is written when the
        actor, a target or the owner is not targetable. Recipients the
        relationship service refuses are skipped silently.
        """

        normalize_activity(activity)
        _raise_for(validate_activity(activity))

        await self._enforce_targetable(activity)

        selected = await self._select_recipients(activity)
        recipients = await self._expand_recipients(activity.tenant_id, selected)
        result = FanoutResult(selected=len(selected), expanded=len(recipients))
        log.info(
            "Fanning out activity %s (%s) to %s recipients (%s selected)",
            activity.id,
            activity.type_key,
            len(recipients),
            len(selected),
        )

        if self._fanout_concurrency == 1 or len(recipients) <= 1:
            for recipient in recipients:
                await self._deliver(activity, recipient, result)
        else:
            semaphore = asyncio.Semaphore(self._fanout_concurrency)

            async def deliver_bounded(recipient: EntityRef) -> None:
                async with semaphore:
                    await self._deliver(activity, recipient, result)

            tasks = [asyncio.create_task(deliver_bounded(recipient)) for recipient in recipients]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                # first failure propagates as raised, pending deliveries are dropped
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        log.info(
            "Finished fan-out for activity %s: delivered=%s, skipped=%s",
            activity.id,
            result.delivered,
            result.skipped,
        )
        return result

    async def _enforce_targetable(self, activity: Activity) -> None:
        checks: list[tuple[EntityRef, str]] = [(activity.actor, "Actor is not targetable")]
        checks.extend((target, "Target is not targetable") for target in activity.targets)
        if activity.owner is not None:
            checks.append((activity.owner, "Owner is not targetable"))

        for entity, reason in checks:
            if not await self._governance.is_targetable(activity.tenant_id, entity):
                log.warning(
                    "Rejecting activity %s: %s is not targetable", activity.id, entity
                )
                raise PolicyViolationError(entity, reason)

    async def _select_recipients(self, activity: Activity) -> list[EntityRef]:
        recipients: dict[EntityKey, EntityRef] = {}

        async def collect(target: EntityRef, kind: RelationshipKind) -> None:
            edges = await self._relationships.query_edges(
                RelationshipQuery(
                    tenant_id=activity.tenant_id,
                    target=target,
                    kind=kind,
                    is_active=True,
                    limit=None,
                )
            )
            for edge in edges:
                recipients.setdefault(edge.source.key, edge.source)

        await collect(activity.actor, RelationshipKind.FOLLOW)
        for target in activity.targets:
            await collect(target, RelationshipKind.SUBSCRIBE)
        if activity.owner is not None:
            await collect(activity.owner, RelationshipKind.SUBSCRIBE)
        return list(recipients.values())

    async def _expand_recipients(
        self, tenant_id: str, selected: Iterable[EntityRef]
    ) -> list[EntityRef]:
        expanded: dict[EntityKey, EntityRef] = {}
        for recipient in selected:
            for effective in await self._expansion.expand(tenant_id, recipient):
                expanded.setdefault(effective.key, effective)
        return list(expanded.values())

    async def _deliver(
        self, activity: Activity, recipient: EntityRef, result: FanoutResult
    ) -> None:
        decision = await self._relationships.can_see(activity.tenant_id, recipient, activity)
        if not decision.allowed:
            log.debug(
                "Skipping %s for activity %s: %s (%s)",
                recipient,
                activity.id,
                decision.kind,
                decision.reason,
            )
            result.skipped += 1
            return

        item = await self.add(_build_activity_item(activity, recipient))
        result.delivered += 1
        result.items.append(item)

    # ------------------------------------------------------------------
    # Inbox items
    # ------------------------------------------------------------------

    async def add(self, item: InboxItem) -> InboxItem:
        """Store ``item`` unless it duplicates or continues an existing one.

        Order of precedence: an item with the same dedup key is returned
        untouched; an item with the same thread key absorbs this one; only
        otherwise is a new record written.
        """

        normalize_inbox_item(item)
        _raise_for(validate_inbox_item(item))

        if not item.id:
            item.id = self._new_id()
        if item.created_at is None:
            item.created_at = self._now()

        if item.dedup_key:
            existing = await self._inbox_store.find_by_dedup_key(
                item.tenant_id, item.recipient, item.dedup_key
            )
            if existing is not None:
                log.debug("Duplicate inbox item for %s: %s", item.recipient, item.dedup_key)
                return existing

        if item.thread_key:
            thread = await self._inbox_store.find_by_thread_key(
                item.tenant_id, item.recipient, item.thread_key
            )
            if thread is not None:
                thread.thread_count += 1
                thread.updated_at = self._now()
                # Status is kept: a read thread stays read and only moves to the top.
                merged = await self._inbox_store.upsert(thread)
                log.debug(
                    "Merged into thread %s for %s (count=%s)",
                    merged.id,
                    item.recipient,
                    merged.thread_count,
                )
                return merged

        stored = await self._inbox_store.upsert(item)
        if stored.id != item.id:
            log.debug("Concurrent insert won for %s: keeping %s", item.recipient, stored.id)
        return stored

    async def query_inbox(self, query: InboxQuery) -> InboxPage:
        normalize_query(query)
        _raise_for(validate_query(query))
        query.limit = min(query.limit, MAX_QUERY_LIMIT)
        return await self._inbox_store.query(query)

    async def get_item(self, tenant_id: str, item_id: str) -> InboxItem:
        tenant_id = normalize_tenant_id(tenant_id)
        item = await self._inbox_store.get_by_id(tenant_id, item_id)
        if item is None:
            raise NotFoundError(_INBOX_ITEM, item_id)
        return item

    async def mark_read(self, tenant_id: str, item_id: str) -> InboxItem:
        return await self._set_status(tenant_id, item_id, InboxItemStatus.READ)

    async def archive(self, tenant_id: str, item_id: str) -> InboxItem:
        return await self._set_status(tenant_id, item_id, InboxItemStatus.ARCHIVED)

    async def _set_status(
        self, tenant_id: str, item_id: str, status: InboxItemStatus
    ) -> InboxItem:
        tenant_id = normalize_tenant_id(tenant_id)
        updated = await self._inbox_store.update_status(tenant_id, item_id, status)
        if updated is None:
            raise NotFoundError(_INBOX_ITEM, item_id)
        return updated

    # ------------------------------------------------------------------
    # Follow requests
    # ------------------------------------------------------------------

    async def create_follow_request(self, request: FollowRequest) -> FollowRequest:
        """Create a follow/subscribe request, or return the one it repeats.

        Without approval the edge is created immediately and the request is
        stored as approved. Otherwise it is stored as pending and every
        approver gets a request item in their inbox.
        """

        normalize_follow_request(request)
        _raise_for(validate_follow_request(request))

        if not await self._governance.is_targetable(request.tenant_id, request.target):
            log.warning("Rejecting follow request: %s is not targetable", request.target)
            raise PolicyViolationError(request.target, NOT_TARGETABLE)

        if not request.idempotency_key:
            request.idempotency_key = follow_request_idempotency_key(
                request.requester, request.target, request.requested_kind, request.scope
            )
        existing = await self._request_store.find_by_idempotency_key(
            request.tenant_id, request.idempotency_key
        )
        if existing is not None:
            log.debug("Follow request %s already exists", existing.id)
            return existing

        if not request.id:
            request.id = self._new_id()
        if request.created_at is None:
            request.created_at = self._now()

        requires_approval = await self._governance.requires_approval_to_follow(
            request.tenant_id, request.requester, request.target, request.requested_kind
        )

        if not requires_approval:
            await self._create_edge(request)
            request.status = FollowRequestStatus.APPROVED
            request.decided_at = self._now()
            stored = await self._request_store.upsert(request)
            if stored.id != request.id:
                return stored
            log.info(
                "Follow request %s approved automatically: %s -> %s",
                stored.id,
                stored.requester,
                stored.target,
            )
            await self._notify_requester(
                stored, "Your follow request was approved automatically."
            )
            return stored

        request.status = FollowRequestStatus.PENDING
        stored = await self._request_store.upsert(request)
        if stored.id != request.id:
            return stored

        approvers = await self._governance.get_approvers(stored.tenant_id, stored.target)
        log.info(
            "Follow request %s pending: %s -> %s, notifying %s approvers",
            stored.id,
            stored.requester,
            stored.target,
            len(approvers),
        )
        for approver in approvers:
            await self._notify_approver(stored, approver)
        return stored

    async def approve_request(
        self,
        tenant_id: str,
        request_id: str,
        decided_by: EntityRef,
        reason: str | None = None,
    ) -> FollowRequest:
        request = await self._load_pending(tenant_id, request_id)
        _decide(request, FollowRequestStatus.APPROVED, decided_by, reason, self._now())

        await self._create_edge(request)
        stored = await self._request_store.upsert(request)
        log.info("Follow request %s approved by %s", stored.id, decided_by)
        await self._notify_requester(stored, reason or "Your follow request was approved.")
        return stored

    async def deny_request(
        self,
        tenant_id: str,
        request_id: str,
        decided_by: EntityRef,
        reason: str | None = None,
    ) -> FollowRequest:
        request = await self._load_pending(tenant_id, request_id)
        _decide(request, FollowRequestStatus.DENIED, decided_by, reason, self._now())

        stored = await self._request_store.upsert(request)
        log.info("Follow request %s denied by %s", stored.id, decided_by)
        await self._notify_requester(stored, reason or "Your follow request was denied.")
        return stored

    async def cancel_request(
        self,
        tenant_id: str,
        request_id: str,
        cancelled_by: EntityRef,
        reason: str | None = None,
    ) -> FollowRequest:
        """Withdraw a pending request. Only the requester may do this."""

        request = await self._load_pending(tenant_id, request_id)
        normalize_entity_ref(cancelled_by)
        if not cancelled_by.same_as(request.requester):
            log.warning(
                "Rejecting cancellation of %s by %s: not the requester", request_id, cancelled_by
            )
            raise PolicyViolationError(cancelled_by, NOT_REQUESTER)

        _decide(request, FollowRequestStatus.CANCELLED, cancelled_by, reason, self._now())
        stored = await self._request_store.upsert(request)
        log.info("Follow request %s cancelled by requester", stored.id)
        return stored

    async def get_follow_request(self, tenant_id: str, request_id: str) -> FollowRequest:
        tenant_id = normalize_tenant_id(tenant_id)
        request = await self._request_store.get_by_id(tenant_id, request_id)
        if request is None:
            raise NotFoundError(_FOLLOW_REQUEST, request_id)
        return request

    async def list_pending_requests(
        self, tenant_id: str, target: EntityRef
    ) -> list[FollowRequest]:
        tenant_id = normalize_tenant_id(tenant_id)
        normalize_entity_ref(target)
        return await self._request_store.query_pending_for_target(tenant_id, target)

    async def _load_pending(self, tenant_id: str, request_id: str) -> FollowRequest:
        request = await self.get_follow_request(tenant_id, request_id)
        if not request.is_pending:
            raise InvalidStatusError(_FOLLOW_REQUEST, request_id, request.status)
        return request

    async def _create_edge(self, request: FollowRequest) -> None:
        await self._relationships.upsert_edge(
            RelationshipEdge(
                tenant_id=request.tenant_id,
                source=request.requester,
                target=request.target,
                kind=request.requested_kind,
                scope=request.scope,
                filter=request.filter,
                is_active=True,
            )
        )

    async def _notify_approver(self, request: FollowRequest, approver: EntityRef) -> None:
        if request.id is None:
            raise ValueError("Follow request must be stored before notifying")
        await self.add(
            InboxItem(
                tenant_id=request.tenant_id,
                recipient=approver,
                kind=InboxItemKind.REQUEST,
                event=EventRef(
                    kind="follow-request", id=request.id, occurred_at=request.created_at
                ),
                title=f"Follow request from {request.requester.label}",
                body=f"Requesting to {request.requested_kind} {request.target.label}",
                targets=[request.requester, request.target],
                dedup_key=approver_dedup_key(request.id, approver),
            )
        )

    async def _notify_requester(self, request: FollowRequest, message: str) -> None:
        if request.id is None:
            raise ValueError("Follow request must be stored before notifying")
        await self.add(
            InboxItem(
                tenant_id=request.tenant_id,
                recipient=request.requester,
                kind=InboxItemKind.NOTIFICATION,
                event=EventRef(
                    kind="follow-request",
                    id=request.id,
                    occurred_at=request.decided_at or request.created_at,
                ),
                title=f"Follow request {request.status}",
                body=message,
                targets=[request.target],
                dedup_key=decision_dedup_key(request.id, request.requester),
            )
        )


def _raise_for(errors: list[ValidationIssue]) -> None:
    if errors:
        raise InboxValidationError(errors)


def _decide(
    request: FollowRequest,
    status: FollowRequestStatus,
    decided_by: EntityRef,
    reason: str | None,
    now: datetime,
) -> None:
    normalize_entity_ref(decided_by)
    request.status = status
    request.decided_by = decided_by
    request.decided_at = now
    request.decision_reason = reason.strip() if reason else None


def _build_activity_item(activity: Activity, recipient: EntityRef) -> InboxItem:
    targets = list(activity.targets)
    if not any(activity.actor.same_as(target) for target in targets):
        targets.insert(0, activity.actor)

    return InboxItem(
        tenant_id=activity.tenant_id,
        recipient=recipient,
        kind=InboxItemKind.NOTIFICATION,
        event=EventRef(
            kind="activity",
            id=activity.id,
            type_key=activity.type_key,
            occurred_at=activity.occurred_at,
        ),
        title=activity.summary,
        targets=targets[:MAX_TARGETS],
        dedup_key=activity_dedup_key(activity.id, recipient),
        thread_key=thread_key(activity.first_target, activity.actor, activity.type_key),
    )
