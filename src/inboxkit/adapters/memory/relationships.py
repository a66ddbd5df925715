"""In-memory relationship graph with visibility decisions."""

from __future__ import annotations

from copy import deepcopy
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from inboxkit.domain.model import (
    ActivityVisibility,
    RelationshipKind,
    RelationshipScope,
    VisibilityDecision,
)
from inboxkit.domain.normalization import normalize_entity_ref, normalize_tenant_id

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from inboxkit.domain.model import (
        Activity,
        EntityKey,
        EntityRef,
        RelationshipEdge,
        RelationshipFilter,
        RelationshipQuery,
    )

type _EdgeKey = tuple[str, EntityKey, EntityKey, RelationshipKind, RelationshipScope]


class InMemoryRelationshipService:
    """Relationship edges kept in a dict, unique per (tenant, source, target, kind, scope).

    Visibility for a viewer is decided from the viewer's own active edges, in
    this order: the actor always sees their own activity, then block, deny,
    private visibility, mute, explicit allow, and finally a default allow.
    """

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._edges: dict[_EdgeKey, RelationshipEdge] = {}
        self._new_id = id_factory or (lambda: uuid4().hex)
        self._now = clock or (lambda: datetime.now(UTC))

    async def upsert_edge(self, edge: RelationshipEdge) -> RelationshipEdge:
        edge.tenant_id = normalize_tenant_id(edge.tenant_id)
        normalize_entity_ref(edge.source)
        normalize_entity_ref(edge.target)

        key = (edge.tenant_id, edge.source.key, edge.target.key, edge.kind, edge.scope)
        existing = self._edges.get(key)
        if existing is not None:
            edge.id = existing.id
            edge.created_at = existing.created_at
        else:
            edge.id = edge.id or self._new_id()
            edge.created_at = edge.created_at or self._now()

        self._edges[key] = deepcopy(edge)
        return deepcopy(edge)

    async def query_edges(self, query: RelationshipQuery) -> list[RelationshipEdge]:
        tenant_id = normalize_tenant_id(query.tenant_id)
        found = [
            edge
            for (edge_tenant, *_), edge in self._edges.items()
            if edge_tenant == tenant_id and _edge_matches_query(edge, query)
        ]
        if query.limit is not None:
            found = found[: query.limit]
        return [deepcopy(edge) for edge in found]

    async def can_see(
        self, tenant_id: str, viewer: EntityRef, activity: Activity
    ) -> VisibilityDecision:
        if viewer.same_as(activity.actor):
            return VisibilityDecision.allow("SelfAuthored")

        tenant_id = normalize_tenant_id(tenant_id)
        edges = [
            edge
            for (edge_tenant, source, *_), edge in self._edges.items()
            if edge_tenant == tenant_id and source == viewer.key and edge.is_active
        ]

        block = _first_match(edges, RelationshipKind.BLOCK, activity)
        if block is not None:
            return VisibilityDecision.deny("Block", block.id)

        deny = _first_match(edges, RelationshipKind.DENY, activity)
        if deny is not None:
            return VisibilityDecision.deny("DenyRule", deny.id)

        if activity.visibility is ActivityVisibility.PRIVATE and not activity.involves(viewer):
            return VisibilityDecision.deny("PrivateVisibility")

        mute = _first_match(edges, RelationshipKind.MUTE, activity)
        if mute is not None:
            return VisibilityDecision.hide("Mute", mute.id)

        allow = _first_match(edges, RelationshipKind.ALLOW, activity)
        if allow is not None:
            return VisibilityDecision.allow("AllowRule", allow.id)

        return VisibilityDecision.allow("Default")


def _edge_matches_query(edge: RelationshipEdge, query: RelationshipQuery) -> bool:
    if query.source is not None and not edge.source.same_as(query.source):
        return False
    if query.target is not None and not edge.target.same_as(query.target):
        return False
    if query.kind is not None and edge.kind is not query.kind:
        return False
    if query.scope is not None and edge.scope is not query.scope:
        return False
    return query.is_active is None or edge.is_active == query.is_active


def _first_match(
    edges: Iterable[RelationshipEdge], kind: RelationshipKind, activity: Activity
) -> RelationshipEdge | None:
    for edge in edges:
        if edge.kind is kind and _scope_matches(edge, activity) and _filter_matches(
            edge.filter, activity
        ):
            return edge
    return None


def _scope_matches(edge: RelationshipEdge, activity: Activity) -> bool:
    to = edge.target
    on_actor = to.same_as(activity.actor)
    on_target = any(to.same_as(target) for target in activity.targets)
    on_owner = to.same_as(activity.owner)
    match edge.scope:
        case RelationshipScope.ACTOR_ONLY:
            return on_actor
        case RelationshipScope.TARGET_ONLY:
            return on_target
        case RelationshipScope.OWNER_ONLY:
            return on_owner
        case RelationshipScope.ANY:
            return on_actor or on_target or on_owner


def _filter_matches(filter_: RelationshipFilter | None, activity: Activity) -> bool:
    if filter_ is None:
        return True

    type_key = activity.type_key.strip().lower()
    if filter_.type_keys or filter_.type_key_prefixes:
        exact = any(key.strip().lower() == type_key for key in filter_.type_keys)
        prefixed = any(
            type_key.startswith(prefix.strip().lower()) for prefix in filter_.type_key_prefixes
        )
        if not (exact or prefixed):
            return False

    tags = {tag.strip().lower() for tag in activity.tags}
    if filter_.required_tags_any and not tags & {
        tag.strip().lower() for tag in filter_.required_tags_any
    }:
        return False
    if tags & {tag.strip().lower() for tag in filter_.excluded_tags_any}:
        return False

    return not (
        filter_.allowed_visibilities and activity.visibility not in filter_.allowed_visibilities
    )
