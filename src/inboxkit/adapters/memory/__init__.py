"""In-memory adapters for tests and local wiring."""

from __future__ import annotations

from .relationships import InMemoryRelationshipService
from .stores import InMemoryFollowRequestStore, InMemoryInboxStore

__all__ = [
    "InMemoryFollowRequestStore",
    "InMemoryInboxStore",
    "InMemoryRelationshipService",
]
