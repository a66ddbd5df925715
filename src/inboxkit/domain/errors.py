"""Expected failure modes of the inbox core.

All of these are local and surfaced synchronously to the caller; none are
retried. Anything else raised by injected stores or policies propagates as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from inboxkit.domain.model import EntityRef


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single validation problem: machine code, message and field path."""

    code: str
    message: str
    path: str | None = None


class InboxError(Exception):
    """Base class for inbox domain failures."""


class InboxValidationError(InboxError):
    """Raised when input fails validation. Nothing has been persisted."""

    def __init__(self, errors: Iterable[ValidationIssue]) -> None:
        self.errors = tuple(errors)
        super().__init__(self._format(self.errors))

    @classmethod
    def single(cls, code: str, message: str, path: str | None = None) -> InboxValidationError:
        return cls([ValidationIssue(code, message, path)])

    @staticmethod
    def _format(errors: tuple[ValidationIssue, ...]) -> str:
        if not errors:
            return "Validation failed."
        if len(errors) == 1:
            return f"Validation failed: {errors[0].message}"
        return f"Validation failed with {len(errors)} errors: {errors[0].message}"


class PolicyViolationError(InboxError):
    """Raised when an entity fails a governance check."""

    def __init__(self, entity: EntityRef, reason: str) -> None:
        self.entity = entity
        self.reason = reason
        super().__init__(f"Policy violation for entity {entity}: {reason}")


class NotFoundError(InboxError):
    """Raised when a referenced inbox item or follow request does not exist."""

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class InvalidStatusError(InboxError):
    """Raised when a state transition is attempted from a non-permitted state."""

    def __init__(self, resource: str, identifier: str, status: str) -> None:
        self.resource = resource
        self.identifier = identifier
        self.status = status
        super().__init__(f"{resource} {identifier} is {status}, expected pending")
