from __future__ import annotations

from enum import Enum


class Capability(str, Enum):
    """Capabilities handed to us by the auth middleware."""

    ADMIN = "admin"
    DELEGATION_ADMIN = "delegation_admin"


class RequestType(str, Enum):
    LEAVE = "leave"
    OVERTIME = "overtime"
    CORRECTION = "correction"


class RequestStatus(str, Enum):
    """Request lifecycle. ``approved_nK`` means levels 1..K are approved."""

    PENDING = "pending"
    APPROVED_N1 = "approved_n1"
    APPROVED_N2 = "approved_n2"
    APPROVED_N3 = "approved_n3"
    APPROVED_N4 = "approved_n4"
    APPROVED_N5 = "approved_n5"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def after_level(cls, level: int) -> "RequestStatus":
        return cls(f"approved_n{int(level)}")

    @property
    def is_terminal(self) -> bool:
        return self in {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED}


class LevelAction(str, Enum):
    NONE = "none"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResolutionMode(str, Enum):
    DIRECT = "direct"
    DELEGATED = "delegated"


class DelegationType(str, Enum):
    ALL = "all"
    LEAVE = "leave"
    OVERTIME = "overtime"
    CORRECTION = "correction"
    EXPENSE = "expense"


class DelegationStatus(str, Enum):
    """Derived at read time, never stored."""

    CANCELLED = "cancelled"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    EXPIRED = "expired"


class NotificationType(str, Enum):
    DELEGATE_ASSIGNED = "delegate_assigned"
    DELEGATION_CANCELLED = "delegation_cancelled"
    TEAM_INFORMED = "team_informed"
    DELEGATION_EXPIRED = "delegation_expired"


class SideEffectKind(str, Enum):
    BALANCE_DEDUCTION = "balance_deduction"
    ATTENDANCE_CORRECTION = "attendance_correction"
