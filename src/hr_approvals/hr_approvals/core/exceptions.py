from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    These are expected outcomes handed back to the caller, not faults.
    """


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConflictError(DomainError):
    """Raised when a write collides with an existing entity.

    ``conflict`` identifies the colliding entity so the UI can point at it.
    """

    def __init__(self, message: str, conflict: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.conflict = dict(conflict or {})


class ForbiddenError(DomainError):
    """Raised when an actor lacks permission for an action."""


class NotFoundError(DomainError):
    pass


class InvalidStateError(DomainError):
    """Raised when a transition is attempted from an incompatible state."""


class AlreadyProcessedError(DomainError):
    """Raised when a concurrent actor already acted on the targeted level."""


class AlreadyCancelledError(DomainError):
    pass


class SideEffectError(Exception):
    """Base for failures of best-effort collaborators (ledger, sink, ...)."""


class LedgerError(SideEffectError):
    pass


class NotificationSinkError(SideEffectError):
    pass


class AttendanceUpdateError(SideEffectError):
    pass
