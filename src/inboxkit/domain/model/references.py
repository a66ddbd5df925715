"""
Reference building blocks:
entity references (identity over normalized type/id) and event references.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


type EntityKey = tuple[str, str]


def entity_key(type_: str | None, id_: str | None) -> EntityKey:
    """Return the normalized ``(type, id)`` identity used for comparisons."""

    return ((type_ or "").strip().lower(), (id_ or "").strip().lower())


@dataclass(eq=False, kw_only=True)
class EntityRef:
    """Reference to any addressable actor or target (profile, group, post, ...).

    ``kind`` and ``display`` are metadata; identity is ``key``. Equality is
    deliberately not overridden since the normalizer mutates references in
    place; collections key on ``key`` instead.
    """

    kind: str
    type: str
    id: str
    display: str | None = None

    @property
    def key(self) -> EntityKey:
        return entity_key(self.type, self.id)

    def same_as(self, other: EntityRef | None) -> bool:
        return other is not None and self.key == other.key

    @property
    def label(self) -> str:
        """Human-facing name: display name when present, id otherwise."""
        return self.display or self.id

    def __str__(self) -> str:
        return f"{self.type}/{self.id}"


@dataclass(eq=False, kw_only=True)
class EventRef:
    """Reference to the event an inbox item was produced for."""

    kind: str
    id: str
    type_key: str | None = None
    occurred_at: datetime | None = None
