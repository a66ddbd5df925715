"""Port for the external relationship graph service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from inboxkit.domain.model import (
        Activity,
        EntityRef,
        RelationshipEdge,
        RelationshipQuery,
        VisibilityDecision,
    )


@runtime_checkable
class RelationshipService(Protocol):
    """Edge queries, edge creation and per-viewer visibility decisions."""

    async def query_edges(self, query: RelationshipQuery) -> list[RelationshipEdge]: ...

    async def can_see(
        self, tenant_id: str, viewer: EntityRef, activity: Activity
    ) -> VisibilityDecision: ...

    async def upsert_edge(self, edge: RelationshipEdge) -> RelationshipEdge: ...
