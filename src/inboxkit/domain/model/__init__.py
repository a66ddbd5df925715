"""Public domain model surface."""

from __future__ import annotations

from inboxkit.domain.model.activity import Activity
from inboxkit.domain.model.enums import (
    ActivityVisibility,
    FollowRequestStatus,
    InboxItemKind,
    InboxItemStatus,
    RelationshipKind,
    RelationshipScope,
    VisibilityDecisionKind,
)
from inboxkit.domain.model.follow import FollowRequest
from inboxkit.domain.model.inbox import DEFAULT_QUERY_LIMIT, InboxItem, InboxPage, InboxQuery
from inboxkit.domain.model.references import EntityKey, EntityRef, EventRef, entity_key
from inboxkit.domain.model.relationships import (
    RelationshipEdge,
    RelationshipFilter,
    RelationshipQuery,
    VisibilityDecision,
)

__all__ = [  # noqa: RUF022
    # references
    "EntityKey",
    "EntityRef",
    "EventRef",
    "entity_key",
    # inbox
    "DEFAULT_QUERY_LIMIT",
    "InboxItem",
    "InboxPage",
    "InboxQuery",
    # follow requests
    "FollowRequest",
    # activities
    "Activity",
    # relationships
    "RelationshipEdge",
    "RelationshipFilter",
    "RelationshipQuery",
    "VisibilityDecision",
    # enums
    "ActivityVisibility",
    "FollowRequestStatus",
    "InboxItemKind",
    "InboxItemStatus",
    "RelationshipKind",
    "RelationshipScope",
    "VisibilityDecisionKind",
]
