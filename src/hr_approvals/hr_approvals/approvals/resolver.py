from __future__ import annotations

from datetime import date
from typing import Optional

from ..common.datetime_utils import Clock, now_local
from ..core.enums import DelegationStatus, ResolutionMode
from ..delegations.repository import DelegationRepository
from ..directory.repository import Directory
from ..requests.model import ApprovalLevel, Request
from .model import Resolution


class ApprovalResolver:
    """Decides whether an actor may act on one level of a request.

    Read-only: it consults the delegation repository of the caller's unit of
    work so the answer is consistent with the write that follows.
    """

    def __init__(self, directory: Directory, clock: Clock = now_local):
        self._directory = directory
        self._clock = clock

    def resolve(
        self,
        actor_id: int,
        request: Request,
        level: ApprovalLevel,
        delegations: DelegationRepository,
        on_date: Optional[date] = None,
    ) -> Resolution:
        if int(actor_id) == int(level.approver_id):
            return Resolution(
                authorized=True,
                mode=ResolutionMode.DIRECT,
                effective_name=self._directory.display_name(int(actor_id)),
            )

        today = on_date or self._clock().date()
        candidates = delegations.find_active_candidates(
            delegate_id=int(actor_id),
            delegator_id=int(level.approver_id),
            request_type=request.request_type,
            on_date=today,
        )
        for delegation in candidates:
            # Candidates arrive type-specific first, so the first fit wins.
            if not delegation.applies_to(request.request_type):
                continue
            if delegation.status_on(today) != DelegationStatus.ACTIVE:
                continue
            if delegation.covers(requester_id=request.requester_id, amount=request.amount):
                return Resolution(
                    authorized=True,
                    mode=ResolutionMode.DELEGATED,
                    delegation_id=delegation.delegation_id,
                    effective_name=self._directory.display_name(delegation.delegator_id),
                )
        return Resolution.denied()
