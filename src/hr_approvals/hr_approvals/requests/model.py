from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from ..core.enums import LevelAction, RequestStatus, RequestType, SideEffectKind
from .payloads import Payload

if TYPE_CHECKING:
    from ..approvals.model import Resolution


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ApprovalLevel:
    level: int
    approver_id: int
    action: LevelAction = LevelAction.NONE
    acted_by_id: Optional[int] = None
    delegation_id: Optional[int] = None
    comment: Optional[str] = None
    acted_at: Optional[datetime] = None

    @property
    def via_delegation(self) -> bool:
        return self.delegation_id is not None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "approver_id": self.approver_id,
            "action": self.action.value,
            "acted_by_id": self.acted_by_id,
            "delegation_id": self.delegation_id,
            "comment": self.comment,
            "acted_at": _iso(self.acted_at),
        }


@dataclass(frozen=True)
class Request:
    """An approval request and its ordered chain of levels.

    While the status is non-terminal, the current level is the lowest-numbered
    level whose action is still ``none``.
    """

    request_id: int
    requester_id: int
    request_type: RequestType
    payload: Payload
    status: RequestStatus
    levels: tuple[ApprovalLevel, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None

    @property
    def total_levels(self) -> int:
        return len(self.levels)

    @property
    def current_level(self) -> Optional[ApprovalLevel]:
        if self.status.is_terminal:
            return None
        for lvl in self.levels:
            if lvl.action == LevelAction.NONE:
                return lvl
        return None

    @property
    def amount(self) -> Optional[Decimal]:
        return self.payload.amount

    @property
    def span(self) -> tuple[date, date]:
        return self.payload.span

    def to_dict(self) -> dict:
        current = self.current_level
        return {
            "request_id": self.request_id,
            "requester_id": self.requester_id,
            "request_type": self.request_type.value,
            "payload": self.payload.to_dict(),
            "status": self.status.value,
            "current_level": current.level if current else None,
            "total_levels": self.total_levels,
            "levels": [lvl.to_dict() for lvl in self.levels],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "cancelled_at": _iso(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
        }


@dataclass(frozen=True)
class TransitionResult:
    request: Request
    is_final: bool
    next_level: Optional[int] = None
    resolution: Optional["Resolution"] = None
    failed_side_effects: tuple[SideEffectKind, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "is_final": self.is_final,
            "next_level": self.next_level,
            "resolution": self.resolution.to_dict() if self.resolution else None,
            "failed_side_effects": [k.value for k in self.failed_side_effects],
        }
