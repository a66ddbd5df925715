"""Pluggable policy hooks consulted by the notification orchestrator.

Both policies are injected at construction time. Each comes with a default
implementation so a host application only overrides what it needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from inboxkit.domain.model import EntityKey, EntityRef, RelationshipKind


@runtime_checkable
class RecipientExpansionPolicy(Protocol):
    """Map one resolved recipient to the entities that should actually be notified."""

    async def expand(self, tenant_id: str, recipient: EntityRef) -> list[EntityRef]: ...


@runtime_checkable
class GovernancePolicy(Protocol):
    """Targetability and approval decisions for entities."""

    async def is_targetable(self, tenant_id: str, entity: EntityRef) -> bool: ...

    async def requires_approval_to_follow(
        self,
        tenant_id: str,
        requester: EntityRef,
        target: EntityRef,
        kind: RelationshipKind,
    ) -> bool: ...

    async def get_approvers(self, tenant_id: str, target: EntityRef) -> list[EntityRef]: ...


class IdentityRecipientExpansion:
    """Default expansion: every recipient stands for itself."""

    async def expand(self, tenant_id: str, recipient: EntityRef) -> list[EntityRef]:
        _ = tenant_id
        return [recipient]


class OpenGovernancePolicy:
    """Everything is targetable, nothing needs approval, targets approve themselves."""

    async def is_targetable(self, tenant_id: str, entity: EntityRef) -> bool:
        _ = tenant_id, entity
        return True

    async def requires_approval_to_follow(
        self,
        tenant_id: str,
        requester: EntityRef,
        target: EntityRef,
        kind: RelationshipKind,
    ) -> bool:
        _ = tenant_id, requester, target, kind
        return False

    async def get_approvers(self, tenant_id: str, target: EntityRef) -> list[EntityRef]:
        _ = tenant_id
        return [target]


@dataclass(slots=True, kw_only=True)
class StaticGovernancePolicy:
    """Governance driven by fixed sets of entity keys.

    ``untargetable`` entities are rejected outright (e.g. deactivated
    accounts). Following anything in ``approval_required`` (e.g. private
    profiles) goes through approval; ``delegated_approvers`` overrides who
    decides for a target, otherwise the target decides for itself.
    """

    untargetable: set[EntityKey] = field(default_factory=set["EntityKey"])
    approval_required: set[EntityKey] = field(default_factory=set["EntityKey"])
    delegated_approvers: dict[EntityKey, list[EntityRef]] = field(
        default_factory=dict["EntityKey", list["EntityRef"]]
    )

    async def is_targetable(self, tenant_id: str, entity: EntityRef) -> bool:
        _ = tenant_id
        return entity.key not in self.untargetable

    async def requires_approval_to_follow(
        self,
        tenant_id: str,
        requester: EntityRef,
        target: EntityRef,
        kind: RelationshipKind,
    ) -> bool:
        _ = tenant_id, requester, kind
        return target.key in self.approval_required

    async def get_approvers(self, tenant_id: str, target: EntityRef) -> list[EntityRef]:
        _ = tenant_id
        delegated = self.delegated_approvers.get(target.key)
        return list(delegated) if delegated else [target]
