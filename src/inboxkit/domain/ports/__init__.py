"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import FollowRequestStore, InboxStore
from .relationships import RelationshipService

__all__ = [
    "FollowRequestStore",
    "InboxStore",
    "RelationshipService",
]
