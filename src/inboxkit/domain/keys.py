"""Deterministic key builders for dedup, threading and idempotency.

All keys are built from normalized (trimmed, lowercased) entity identities so
that two references to the same entity always produce the same key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inboxkit.domain.model import EntityRef, RelationshipKind, RelationshipScope


def entity_key_string(entity: EntityRef) -> str:
    """Serialize an entity identity as ``type|id``."""
    type_, id_ = entity.key
    return f"{type_}|{id_}"


def type_key_prefix(type_key: str | None) -> str:
    """Return the part of a type key before the first dot (``post.created`` -> ``post``)."""

    if not type_key:
        return ""
    prefix, _, _ = type_key.strip().lower().partition(".")
    return prefix


def activity_dedup_key(activity_id: str, recipient: EntityRef) -> str:
    return f"activity:{activity_id.strip()}:recipient:{entity_key_string(recipient)}"


def thread_key(target: EntityRef | None, actor: EntityRef, type_key: str | None) -> str:
    """Group same-shape events: by first target when there is one, else by actor."""

    prefix = type_key_prefix(type_key)
    if target is not None:
        type_, id_ = target.key
        return f"target:{type_}:{id_}:type:{prefix}"
    type_, id_ = actor.key
    return f"actor:{type_}:{id_}:type:{prefix}"


def follow_request_idempotency_key(
    requester: EntityRef,
    target: EntityRef,
    kind: RelationshipKind,
    scope: RelationshipScope,
) -> str:
    return f"{entity_key_string(requester)}:{entity_key_string(target)}:{kind}:{scope}"


def approver_dedup_key(request_id: str, approver: EntityRef) -> str:
    return f"follow-request:{request_id}:approver:{entity_key_string(approver)}"


def decision_dedup_key(request_id: str, requester: EntityRef) -> str:
    return f"follow-request:{request_id}:result:{entity_key_string(requester)}"
