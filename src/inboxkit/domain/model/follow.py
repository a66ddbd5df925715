"""Follow/subscribe requests awaiting (or past) a decision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from inboxkit.domain.model.enums import FollowRequestStatus, RelationshipKind, RelationshipScope

if TYPE_CHECKING:
    from datetime import datetime

    from inboxkit.domain.model.references import EntityRef
    from inboxkit.domain.model.relationships import RelationshipFilter


@dataclass(eq=False, kw_only=True)
class FollowRequest:
    tenant_id: str
    requester: EntityRef
    target: EntityRef
    requested_kind: RelationshipKind = RelationshipKind.FOLLOW
    scope: RelationshipScope = RelationshipScope.ANY
    filter: RelationshipFilter | None = None
    id: str | None = None
    idempotency_key: str | None = None
    status: FollowRequestStatus = FollowRequestStatus.PENDING
    created_at: datetime | None = None
    decided_by: EntityRef | None = None
    decided_at: datetime | None = None
    decision_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is FollowRequestStatus.PENDING
