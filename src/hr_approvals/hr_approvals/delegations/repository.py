from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import FrozenSet, Optional, Protocol, Sequence

from ..core.enums import DelegationStatus, DelegationType, RequestType
from .model import Delegation, NewDelegation


class DelegationRepository(Protocol):
    """Persistence for delegations, bound to one unit of work."""

    def create(self, new: NewDelegation, *, now: datetime) -> int:
        raise NotImplementedError

    def get(self, delegation_id: int) -> Optional[Delegation]:
        raise NotImplementedError

    def lock_delegator(self, delegator_id: int) -> None:
        """Serialize delegation writes for one delegator until commit."""

        raise NotImplementedError

    def find_overlapping(
        self,
        *,
        delegator_id: int,
        delegation_type: DelegationType,
        start_date: date,
        end_date: date,
        exclude_id: Optional[int] = None,
    ) -> Sequence[Delegation]:
        """Active delegations of the same type whose window intersects."""

        raise NotImplementedError

    def find_active_candidates(
        self,
        *,
        delegate_id: int,
        delegator_id: int,
        request_type: RequestType,
        on_date: date,
    ) -> Sequence[Delegation]:
        """Active, in-window delegations of type ``all`` or ``request_type``.

        Type-specific rows come before ``all`` rows.
        """

        raise NotImplementedError

    def deactivate(self, delegation_id: int, *, cancelled_by: int, reason: Optional[str], now: datetime) -> bool:
        """Returns False if the delegation was no longer active."""

        raise NotImplementedError

    def update_terms(
        self,
        delegation_id: int,
        *,
        end_date: date,
        excluded_employee_ids: FrozenSet[int],
        max_amount: Optional[Decimal],
        notes: Optional[str],
        now: datetime,
    ) -> bool:
        raise NotImplementedError

    def mark_delegate_notified(self, delegation_id: int) -> None:
        raise NotImplementedError

    def list_for_delegate(self, delegate_id: int, *, active_on: Optional[date] = None) -> Sequence[Delegation]:
        raise NotImplementedError

    def list_for_delegator(
        self,
        delegator_id: int,
        *,
        status: Optional[DelegationStatus],
        today: date,
    ) -> Sequence[Delegation]:
        raise NotImplementedError

    def list_all(
        self,
        *,
        today: date,
        delegator_id: Optional[int] = None,
        delegate_id: Optional[int] = None,
        status: Optional[DelegationStatus] = None,
        delegation_type: Optional[DelegationType] = None,
    ) -> Sequence[Delegation]:
        raise NotImplementedError
