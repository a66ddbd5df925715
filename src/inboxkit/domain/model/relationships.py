"""Relationship graph records exchanged with the external relationship service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from inboxkit.domain.model.enums import (
    ActivityVisibility,
    RelationshipKind,
    RelationshipScope,
    VisibilityDecisionKind,
)

if TYPE_CHECKING:
    from datetime import datetime

    from inboxkit.domain.model.references import EntityRef


@dataclass(eq=False, kw_only=True)
class RelationshipFilter:
    """Optional narrowing of an edge to a subset of activities."""

    type_keys: list[str] = field(default_factory=list[str])
    type_key_prefixes: list[str] = field(default_factory=list[str])
    required_tags_any: list[str] = field(default_factory=list[str])
    excluded_tags_any: list[str] = field(default_factory=list[str])
    allowed_visibilities: list[ActivityVisibility] = field(
        default_factory=list[ActivityVisibility]
    )


@dataclass(eq=False, kw_only=True)
class RelationshipEdge:
    """Directed edge ``source -> target`` of a given kind."""

    tenant_id: str
    source: EntityRef
    target: EntityRef
    kind: RelationshipKind
    scope: RelationshipScope = RelationshipScope.ANY
    filter: RelationshipFilter | None = None
    is_active: bool = True
    id: str | None = None
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class RelationshipQuery:
    tenant_id: str
    source: EntityRef | None = None
    target: EntityRef | None = None
    kind: RelationshipKind | None = None
    scope: RelationshipScope | None = None
    is_active: bool | None = True
    # None returns every matching edge
    limit: int | None = 200


@dataclass(frozen=True, slots=True)
class VisibilityDecision:
    """Outcome of asking whether a viewer may see an activity."""

    kind: VisibilityDecisionKind
    allowed: bool
    reason: str
    matched_edge_id: str | None = None

    @classmethod
    def allow(cls, reason: str, matched_edge_id: str | None = None) -> VisibilityDecision:
        return cls(VisibilityDecisionKind.ALLOWED, True, reason, matched_edge_id)

    @classmethod
    def deny(cls, reason: str, matched_edge_id: str | None = None) -> VisibilityDecision:
        return cls(VisibilityDecisionKind.DENIED, False, reason, matched_edge_id)

    @classmethod
    def hide(cls, reason: str, matched_edge_id: str | None = None) -> VisibilityDecision:
        return cls(VisibilityDecisionKind.HIDDEN, False, reason, matched_edge_id)
