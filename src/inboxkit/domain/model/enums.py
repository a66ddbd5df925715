"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class InboxItemKind(StrEnum):
    NOTIFICATION = "notification"
    REQUEST = "request"


class InboxItemStatus(StrEnum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


class FollowRequestStatus(StrEnum):
    """Lifecycle of a follow/subscribe request. Everything but PENDING is terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not FollowRequestStatus.PENDING


class RelationshipKind(StrEnum):
    FOLLOW = "follow"
    SUBSCRIBE = "subscribe"
    BLOCK = "block"
    MUTE = "mute"
    ALLOW = "allow"
    DENY = "deny"


class RelationshipScope(StrEnum):
    """Which part of an activity a relationship edge applies to."""

    ANY = "any"
    ACTOR_ONLY = "actor_only"
    TARGET_ONLY = "target_only"
    OWNER_ONLY = "owner_only"


class ActivityVisibility(StrEnum):
    PUBLIC = "public"
    INTERNAL = "internal"
    PRIVATE = "private"


class VisibilityDecisionKind(StrEnum):
    ALLOWED = "allowed"
    DENIED = "denied"
    HIDDEN = "hidden"
