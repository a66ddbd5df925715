"""Published activities as seen by the fan-out workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from inboxkit.domain.model.enums import ActivityVisibility

if TYPE_CHECKING:
    from datetime import datetime

    from inboxkit.domain.model.references import EntityRef


@dataclass(eq=False, kw_only=True)
class Activity:
    """Something an actor did, optionally to targets, optionally within an owner."""

    tenant_id: str
    id: str
    type_key: str
    actor: EntityRef
    targets: list[EntityRef] = field(default_factory=list["EntityRef"])
    owner: EntityRef | None = None
    summary: str | None = None
    occurred_at: datetime | None = None
    visibility: ActivityVisibility = ActivityVisibility.PUBLIC
    tags: list[str] = field(default_factory=list[str])

    @property
    def first_target(self) -> EntityRef | None:
        return self.targets[0] if self.targets else None

    def involves(self, entity: EntityRef) -> bool:
        """Whether ``entity`` is the actor, the owner or one of the targets."""
        if entity.same_as(self.actor) or entity.same_as(self.owner):
            return True
        return any(entity.same_as(target) for target in self.targets)
