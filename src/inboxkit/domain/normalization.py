"""In-place normalization of inbox records.

Every function here only trims/lowercases string fields of the object it is
given. Nothing is validated and nothing else is touched, so running a
normalizer twice yields the same result as running it once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inboxkit.domain.model import (
        Activity,
        EntityRef,
        EventRef,
        FollowRequest,
        InboxItem,
        InboxQuery,
    )


def normalize_tenant_id(tenant_id: str | None) -> str:
    return tenant_id.strip().lower() if tenant_id else ""


def _trim(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def normalize_entity_ref(entity: EntityRef) -> None:
    entity.kind = (entity.kind or "").strip()
    entity.type = (entity.type or "").strip()
    entity.id = (entity.id or "").strip()
    entity.display = _trim(entity.display)


def normalize_event_ref(event: EventRef) -> None:
    event.kind = (event.kind or "").strip()
    event.id = (event.id or "").strip()
    event.type_key = _trim(event.type_key)


def normalize_inbox_item(item: InboxItem) -> None:
    item.tenant_id = normalize_tenant_id(item.tenant_id)
    item.title = _trim(item.title)
    item.body = _trim(item.body)
    item.dedup_key = _trim(item.dedup_key)
    item.thread_key = _trim(item.thread_key)
    normalize_entity_ref(item.recipient)
    normalize_event_ref(item.event)
    for target in item.targets:
        normalize_entity_ref(target)


def normalize_follow_request(request: FollowRequest) -> None:
    request.tenant_id = normalize_tenant_id(request.tenant_id)
    request.idempotency_key = _trim(request.idempotency_key)
    request.decision_reason = _trim(request.decision_reason)
    normalize_entity_ref(request.requester)
    normalize_entity_ref(request.target)
    if request.decided_by is not None:
        normalize_entity_ref(request.decided_by)


def normalize_query(query: InboxQuery) -> None:
    query.tenant_id = normalize_tenant_id(query.tenant_id)
    query.cursor = _trim(query.cursor) or None
    for recipient in query.recipients:
        normalize_entity_ref(recipient)


def normalize_activity(activity: Activity) -> None:
    activity.tenant_id = normalize_tenant_id(activity.tenant_id)
    activity.id = (activity.id or "").strip()
    activity.type_key = (activity.type_key or "").strip()
    activity.summary = _trim(activity.summary)
    normalize_entity_ref(activity.actor)
    for target in activity.targets:
        normalize_entity_ref(target)
    if activity.owner is not None:
        normalize_entity_ref(activity.owner)
