"""SQLAlchemy table metadata for inbox items and follow requests."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

from inboxkit.domain.model import (
    ActivityVisibility,
    EntityRef,
    EventRef,
    FollowRequestStatus,
    InboxItemKind,
    InboxItemStatus,
    RelationshipFilter,
    RelationshipKind,
    RelationshipScope,
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def entity_to_dict(entity: EntityRef) -> dict[str, str | None]:
    return {"kind": entity.kind, "type": entity.type, "id": entity.id, "display": entity.display}


def entity_from_dict(payload: dict[str, Any]) -> EntityRef:
    return EntityRef(
        kind=str(payload.get("kind") or ""),
        type=str(payload.get("type") or ""),
        id=str(payload.get("id") or ""),
        display=payload.get("display"),
    )


class EntityRefType(TypeDecorator[EntityRef]):
    """Single entity reference stored as a JSON object."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: EntityRef | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(entity_to_dict(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> EntityRef | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return None
        return entity_from_dict(cast(dict[str, Any], loaded))


class EntityRefListType(TypeDecorator[list[EntityRef]]):
    """Ordered list of entity references stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[EntityRef] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps([entity_to_dict(entity) for entity in value or []])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[EntityRef]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [
            entity_from_dict(cast(dict[str, Any], item)) for item in items if isinstance(item, dict)
        ]


class EventRefType(TypeDecorator[EventRef]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: EventRef | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        occurred_at = value.occurred_at.astimezone(UTC).isoformat() if value.occurred_at else None
        return json.dumps(
            {
                "kind": value.kind,
                "id": value.id,
                "type_key": value.type_key,
                "occurred_at": occurred_at,
            }
        )

    def process_result_value(self, value: str | None, dialect: Dialect) -> EventRef | None:
        _ = dialect
        if value is None:
            return None
        payload = cast(dict[str, Any], json.loads(value))
        occurred_at = payload.get("occurred_at")
        return EventRef(
            kind=str(payload.get("kind") or ""),
            id=str(payload.get("id") or ""),
            type_key=payload.get("type_key"),
            occurred_at=datetime.fromisoformat(occurred_at) if occurred_at else None,
        )


class RelationshipFilterType(TypeDecorator[RelationshipFilter]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: RelationshipFilter | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(
            {
                "type_keys": list(value.type_keys),
                "type_key_prefixes": list(value.type_key_prefixes),
                "required_tags_any": list(value.required_tags_any),
                "excluded_tags_any": list(value.excluded_tags_any),
                "allowed_visibilities": [str(item) for item in value.allowed_visibilities],
            }
        )

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> RelationshipFilter | None:
        _ = dialect
        if value is None:
            return None
        payload = cast(dict[str, list[str]], json.loads(value))
        return RelationshipFilter(
            type_keys=payload.get("type_keys", []),
            type_key_prefixes=payload.get("type_key_prefixes", []),
            required_tags_any=payload.get("required_tags_any", []),
            excluded_tags_any=payload.get("excluded_tags_any", []),
            allowed_visibilities=[
                ActivityVisibility(item) for item in payload.get("allowed_visibilities", [])
            ],
        )


metadata = MetaData()


def _str_enum(enum_type: type[StrEnum]) -> Enum:
    return Enum(
        enum_type,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


inbox_item_table = Table(
    "inbox_item",
    metadata,
    Column("tenant_id", String(100), primary_key=True),
    Column("id", String(64), primary_key=True),
    Column("recipient_key", String, nullable=False),
    Column("recipient", EntityRefType, nullable=False),
    Column("kind", _str_enum(InboxItemKind), nullable=False),
    Column("event", EventRefType, nullable=False),
    Column("title", String(500), nullable=True),
    Column("body", Text, nullable=True),
    Column("targets", EntityRefListType, nullable=False),
    Column("data", JSON, nullable=True),
    Column("status", _str_enum(InboxItemStatus), nullable=False),
    Column("dedup_key", String, nullable=True),
    Column("thread_key", String, nullable=True),
    Column("thread_count", Integer, nullable=False, default=1),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=True),
    Column("sort_at", UTCDateTime, nullable=False),
    UniqueConstraint("tenant_id", "recipient_key", "dedup_key", name="uq_inbox_item_dedup"),
    Index("ix_inbox_item_thread", "tenant_id", "recipient_key", "thread_key"),
    Index("ix_inbox_item_recipient_sort", "tenant_id", "recipient_key", "sort_at", "id"),
)

follow_request_table = Table(
    "follow_request",
    metadata,
    Column("tenant_id", String(100), primary_key=True),
    Column("id", String(64), primary_key=True),
    Column("requester", EntityRefType, nullable=False),
    Column("target_key", String, nullable=False),
    Column("target", EntityRefType, nullable=False),
    Column("requested_kind", _str_enum(RelationshipKind), nullable=False),
    Column("scope", _str_enum(RelationshipScope), nullable=False),
    Column("filter", RelationshipFilterType, nullable=True),
    Column("idempotency_key", String, nullable=True),
    Column("status", _str_enum(FollowRequestStatus), nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("decided_by", EntityRefType, nullable=True),
    Column("decided_at", UTCDateTime, nullable=True),
    Column("decision_reason", Text, nullable=True),
    UniqueConstraint("tenant_id", "idempotency_key", name="uq_follow_request_idempotency"),
    Index("ix_follow_request_target_status", "tenant_id", "target_key", "status"),
)
