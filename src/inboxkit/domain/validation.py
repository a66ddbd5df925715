"""Validation rules for inbox records.

Validators never raise: each returns the list of problems it found, and an
empty list means the record is valid. Callers decide what to do with them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from inboxkit.domain.errors import ValidationIssue
from inboxkit.domain.model import RelationshipKind

if TYPE_CHECKING:
    from inboxkit.domain.model import (
        Activity,
        EntityRef,
        EventRef,
        FollowRequest,
        InboxItem,
        InboxQuery,
    )

MAX_TITLE_LENGTH: Final[int] = 500
MAX_BODY_LENGTH: Final[int] = 2000
MAX_TENANT_ID_LENGTH: Final[int] = 100
MAX_TARGETS: Final[int] = 50
MAX_QUERY_LIMIT: Final[int] = 200

REQUIRED: Final[str] = "REQUIRED"
MAX_LENGTH: Final[str] = "MAX_LENGTH"
MAX_COUNT: Final[str] = "MAX_COUNT"
MAX_VALUE: Final[str] = "MAX_VALUE"
INVALID_VALUE: Final[str] = "INVALID_VALUE"

_REQUESTABLE_KINDS: Final[frozenset[RelationshipKind]] = frozenset(
    {RelationshipKind.FOLLOW, RelationshipKind.SUBSCRIBE}
)


def validate_inbox_item(item: InboxItem) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    _validate_tenant_id(item.tenant_id, errors)
    _validate_entity_ref(item.recipient, "recipient", errors)
    _validate_event_ref(item.event, errors)

    if item.title is not None and len(item.title) > MAX_TITLE_LENGTH:
        errors.append(
            ValidationIssue(MAX_LENGTH, f"title exceeds {MAX_TITLE_LENGTH} characters.", "title")
        )
    if item.body is not None and len(item.body) > MAX_BODY_LENGTH:
        errors.append(
            ValidationIssue(MAX_LENGTH, f"body exceeds {MAX_BODY_LENGTH} characters.", "body")
        )
    if len(item.targets) > MAX_TARGETS:
        errors.append(
            ValidationIssue(MAX_COUNT, f"targets exceeds {MAX_TARGETS} items.", "targets")
        )
    for index, target in enumerate(item.targets):
        _validate_entity_ref(target, f"targets[{index}]", errors)
    if item.thread_count < 1:
        errors.append(
            ValidationIssue(INVALID_VALUE, "thread_count must be at least 1.", "thread_count")
        )
    return errors


def validate_follow_request(request: FollowRequest) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    _validate_tenant_id(request.tenant_id, errors)
    _validate_entity_ref(request.requester, "requester", errors)
    _validate_entity_ref(request.target, "target", errors)
    if request.requested_kind not in _REQUESTABLE_KINDS:
        errors.append(
            ValidationIssue(
                INVALID_VALUE,
                "requested_kind must be follow or subscribe.",
                "requested_kind",
            )
        )
    return errors


def validate_query(query: InboxQuery) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    _validate_tenant_id(query.tenant_id, errors)
    if query.limit < 1:
        errors.append(ValidationIssue(INVALID_VALUE, "limit must be at least 1.", "limit"))
    if query.limit > MAX_QUERY_LIMIT:
        errors.append(
            ValidationIssue(MAX_VALUE, f"limit exceeds maximum of {MAX_QUERY_LIMIT}.", "limit")
        )
    for index, recipient in enumerate(query.recipients):
        _validate_entity_ref(recipient, f"recipients[{index}]", errors)
    return errors


def validate_activity(activity: Activity) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    _validate_tenant_id(activity.tenant_id, errors)
    if not activity.id:
        errors.append(ValidationIssue(REQUIRED, "id is required.", "id"))
    if not activity.type_key:
        errors.append(ValidationIssue(REQUIRED, "type_key is required.", "type_key"))
    _validate_entity_ref(activity.actor, "actor", errors)
    for index, target in enumerate(activity.targets):
        _validate_entity_ref(target, f"targets[{index}]", errors)
    if activity.owner is not None:
        _validate_entity_ref(activity.owner, "owner", errors)
    return errors


def _validate_tenant_id(tenant_id: str | None, errors: list[ValidationIssue]) -> None:
    if not tenant_id or not tenant_id.strip():
        errors.append(ValidationIssue(REQUIRED, "tenant_id is required.", "tenant_id"))
    elif len(tenant_id) > MAX_TENANT_ID_LENGTH:
        errors.append(
            ValidationIssue(
                MAX_LENGTH,
                f"tenant_id exceeds {MAX_TENANT_ID_LENGTH} characters.",
                "tenant_id",
            )
        )


def _validate_entity_ref(
    entity: EntityRef | None, path: str, errors: list[ValidationIssue]
) -> None:
    if entity is None:
        errors.append(ValidationIssue(REQUIRED, f"{path} is required.", path))
        return
    for field_name in ("kind", "type", "id"):
        value: str | None = getattr(entity, field_name)
        if not value or not value.strip():
            errors.append(
                ValidationIssue(
                    REQUIRED, f"{path}.{field_name} is required.", f"{path}.{field_name}"
                )
            )


def _validate_event_ref(event: EventRef | None, errors: list[ValidationIssue]) -> None:
    if event is None:
        errors.append(ValidationIssue(REQUIRED, "event is required.", "event"))
        return
    if not event.kind or not event.kind.strip():
        errors.append(ValidationIssue(REQUIRED, "event.kind is required.", "event.kind"))
    if not event.id or not event.id.strip():
        errors.append(ValidationIssue(REQUIRED, "event.id is required.", "event.id"))
