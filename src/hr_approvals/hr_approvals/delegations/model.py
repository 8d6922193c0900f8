from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import FrozenSet, Optional

from ..core.enums import DelegationStatus, DelegationType, RequestType


@dataclass(frozen=True)
class Delegation:
    """Time-bounded grant letting ``delegate_id`` approve for ``delegator_id``.

    The window ``[start_date, end_date]`` is inclusive on both ends.
    """

    delegation_id: int
    delegator_id: int
    delegate_id: int
    start_date: date
    end_date: date
    delegation_type: DelegationType = DelegationType.ALL
    excluded_employee_ids: FrozenSet[int] = field(default_factory=frozenset)
    max_amount: Optional[Decimal] = None
    is_active: bool = True
    reason: Optional[str] = None
    notes: Optional[str] = None
    requires_notification: bool = True
    notification_sent_to_delegate: bool = False
    notification_sent_to_team: bool = False
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None

    def status_on(self, today: date) -> DelegationStatus:
        if not self.is_active:
            return DelegationStatus.CANCELLED
        if today < self.start_date:
            return DelegationStatus.UPCOMING
        if today <= self.end_date:
            return DelegationStatus.ACTIVE
        return DelegationStatus.EXPIRED

    def applies_to(self, request_type: RequestType) -> bool:
        return self.delegation_type in {DelegationType.ALL, DelegationType(request_type.value)}

    def covers(self, *, requester_id: int, amount: Optional[Decimal]) -> bool:
        if int(requester_id) in self.excluded_employee_ids:
            return False
        if amount is not None and self.max_amount is not None and amount > self.max_amount:
            return False
        return True

    def to_dict(self, *, today: Optional[date] = None) -> dict:
        out = {
            "delegation_id": self.delegation_id,
            "delegator_id": self.delegator_id,
            "delegate_id": self.delegate_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "delegation_type": self.delegation_type.value,
            "excluded_employee_ids": sorted(self.excluded_employee_ids),
            "max_amount": str(self.max_amount) if self.max_amount is not None else None,
            "is_active": self.is_active,
            "reason": self.reason,
            "notes": self.notes,
            "notification_sent_to_delegate": self.notification_sent_to_delegate,
            "notification_sent_to_team": self.notification_sent_to_team,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
        }
        if today is not None:
            out["current_status"] = self.status_on(today).value
        return out


@dataclass(frozen=True)
class NewDelegation:
    delegator_id: int
    delegate_id: int
    start_date: date
    end_date: date
    delegation_type: DelegationType
    excluded_employee_ids: FrozenSet[int]
    max_amount: Optional[Decimal]
    reason: Optional[str]
    notes: Optional[str]
    requires_notification: bool
    created_by: int


@dataclass(frozen=True)
class DelegationCreated:
    delegation: Delegation
    subordinate_warning: bool = False
    notification_failed: bool = False

    @property
    def warnings(self) -> list[str]:
        out = []
        if self.subordinate_warning:
            out.append("Delegate reports to the delegator")
        if self.notification_failed:
            out.append("Delegate notification could not be queued")
        return out
