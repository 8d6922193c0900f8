from __future__ import annotations

from datetime import date, datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import LevelAction, RequestStatus, RequestType, SideEffectKind
from .model import Request
from .payloads import Payload


class RequestRepository(Protocol):
    """Persistence for requests and their level rows, bound to one unit of work."""

    def create(
        self,
        *,
        requester_id: int,
        request_type: RequestType,
        payload: Payload,
        approver_ids: Sequence[int],
        status: RequestStatus,
        now: datetime,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[Request]:
        raise NotImplementedError

    def lock_requester(self, requester_id: int) -> None:
        """Serialize request creation for one employee until commit."""

        raise NotImplementedError

    def find_overlapping_leaves(self, *, requester_id: int, start_date: date, end_date: date) -> Sequence[Request]:
        """Leave requests of the employee, neither rejected nor cancelled, touching the range."""

        raise NotImplementedError

    def record_level_action(
        self,
        *,
        request_id: int,
        level: int,
        action: LevelAction,
        acted_by_id: int,
        delegation_id: Optional[int],
        comment: Optional[str],
        now: datetime,
    ) -> bool:
        """Write the action only if the level is still ``none``.

        Returns False when another actor got there first.
        """

        raise NotImplementedError

    def set_status(self, request_id: int, *, expected: RequestStatus, new: RequestStatus, now: datetime) -> bool:
        raise NotImplementedError

    def mark_cancelled(
        self,
        request_id: int,
        *,
        expected: Collection[RequestStatus],
        cancelled_by: int,
        reason: Optional[str],
        now: datetime,
    ) -> bool:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        requester_id: Optional[int] = None,
        current_approver_ids: Optional[Collection[int]] = None,
        in_progress_only: bool = False,
        limit: int = 200,
    ) -> Sequence[Request]:
        """Newest first.

        ``current_approver_ids`` keeps requests whose current level belongs to
        one of the ids (implies ``in_progress_only``).
        """

        raise NotImplementedError

    def record_side_effect_failure(
        self,
        *,
        request_id: int,
        kind: SideEffectKind,
        error_message: str,
        now: datetime,
    ) -> None:
        raise NotImplementedError
