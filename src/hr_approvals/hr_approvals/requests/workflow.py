from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional, Union

from ..approvals.model import ApprovalRights, Resolution
from ..approvals.resolver import ApprovalResolver
from ..common.datetime_utils import Clock, now_local
from ..common.validators import optional_text, require_non_empty
from ..core.actor import Actor
from ..core.constants import DEFAULT_APPROVAL_LEVELS, DEFAULT_LIST_LIMIT, MAX_APPROVAL_DEPTH
from ..core.exceptions import (
    AlreadyProcessedError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..core.enums import LevelAction, RequestStatus, RequestType
from ..directory.repository import Directory
from .model import Request, TransitionResult
from .payloads import LeavePayload, parse_payload
from .side_effects import run_terminal_side_effect

if TYPE_CHECKING:
    from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

PENDING_SCOPES = ("to_approve", "mine", "all")


def _coerce_type(value: Union[str, RequestType]) -> RequestType:
    try:
        return RequestType(value)
    except ValueError:
        raise ValidationError(f"Unknown request type: {value!r}")


class WorkflowEngine:
    """Drives requests through their approval chain.

    Every command runs in one unit of work. Concurrent actors are arbitrated
    by conditional writes: the loser gets ``AlreadyProcessedError`` and its
    transaction is rolled back.
    """

    def __init__(
        self,
        uow_factory: "UnitOfWorkFactory",
        directory: Directory,
        *,
        resolver: Optional[ApprovalResolver] = None,
        approval_levels: Optional[Mapping[str, int]] = None,
        clock: Clock = now_local,
    ):
        self._uow_factory = uow_factory
        self._directory = directory
        self._clock = clock
        self._resolver = resolver or ApprovalResolver(directory, clock)

        levels = dict(DEFAULT_APPROVAL_LEVELS)
        for key, depth in (approval_levels or {}).items():
            levels[_coerce_type(key).value] = int(depth)
        for key, depth in levels.items():
            if depth < 0 or depth > MAX_APPROVAL_DEPTH:
                raise ValueError(f"Approval depth for {key} must be within 0..{MAX_APPROVAL_DEPTH}")
        self._approval_levels = levels

    def approval_depth(self, request_type: RequestType) -> int:
        return self._approval_levels.get(request_type.value, 0)

    @staticmethod
    def _load(uow: "UnitOfWork", request_id: int) -> Request:
        request = uow.requests.get(int(request_id))
        if not request:
            raise NotFoundError(f"Request {request_id} not found")
        return request

    # -------- Creation --------
    def create_request(
        self,
        actor: Actor,
        request_type: Union[str, RequestType],
        payload: Optional[dict],
    ) -> TransitionResult:
        rtype = _coerce_type(request_type)
        parsed = parse_payload(rtype, payload)
        requester_id = actor.actor_id

        if not self._directory.exists(requester_id):
            raise ValidationError(f"Unknown employee {requester_id}")

        depth = self.approval_depth(rtype)
        approvers = [int(m) for m in self._directory.manager_chain_of(requester_id)][:depth]
        status = RequestStatus.PENDING if approvers else RequestStatus.APPROVED
        now = self._clock()

        with self._uow_factory() as uow:
            if isinstance(parsed, LeavePayload):
                # Held until commit so a concurrent leave for the same employee waits for this one.
                uow.requests.lock_requester(requester_id)
                overlapping = uow.requests.find_overlapping_leaves(
                    requester_id=requester_id,
                    start_date=parsed.start_date,
                    end_date=parsed.end_date,
                )
                if overlapping:
                    other = overlapping[0]
                    other_payload: LeavePayload = other.payload  # type: ignore[assignment]
                    raise ConflictError(
                        f"Leave overlaps request {other.request_id} "
                        f"({other_payload.start_date:%Y-%m-%d} to {other_payload.end_date:%Y-%m-%d})",
                        conflict={
                            "request_id": other.request_id,
                            "start_date": other_payload.start_date.isoformat(),
                            "end_date": other_payload.end_date.isoformat(),
                            "leave_type_id": other_payload.leave_type_id,
                            "status": other.status.value,
                        },
                    )

            request_id = uow.requests.create(
                requester_id=requester_id,
                request_type=rtype,
                payload=parsed,
                approver_ids=approvers,
                status=status,
                now=now,
            )
            request = self._load(uow, request_id)

            failed = ()
            if status == RequestStatus.APPROVED:
                failed = run_terminal_side_effect(uow, request, now)

        logger.info(
            "Request %s created: type=%s requester=%s levels=%s status=%s",
            request_id,
            rtype.value,
            requester_id,
            len(approvers),
            status.value,
        )
        return TransitionResult(
            request=request,
            is_final=status == RequestStatus.APPROVED,
            next_level=1 if approvers else None,
            failed_side_effects=failed,
        )

    # -------- Level transitions --------
    def _authorize_current_level(self, uow: "UnitOfWork", request: Request, actor: Actor):
        if request.status.is_terminal:
            raise InvalidStateError(f"Request {request.request_id} is already {request.status.value}")
        level = request.current_level
        if level is None:
            raise InvalidStateError(f"Request {request.request_id} has no level awaiting a decision")

        resolution = self._resolver.resolve(actor.actor_id, request, level, uow.delegations)
        if not resolution.authorized:
            raise ForbiddenError(f"Not authorized to act on level {level.level} of request {request.request_id}")
        return level, resolution

    def _write_level(
        self,
        uow: "UnitOfWork",
        request: Request,
        level_no: int,
        action: LevelAction,
        actor: Actor,
        resolution: Resolution,
        comment: Optional[str],
        new_status: RequestStatus,
    ) -> None:
        now = self._clock()
        written = uow.requests.record_level_action(
            request_id=request.request_id,
            level=level_no,
            action=action,
            acted_by_id=actor.actor_id,
            delegation_id=resolution.delegation_id,
            comment=optional_text(comment),
            now=now,
        )
        if written:
            written = uow.requests.set_status(
                request.request_id,
                expected=request.status,
                new=new_status,
                now=now,
            )
        if not written:
            logger.info(
                "Request %s level %s already processed; %s by %s discarded",
                request.request_id,
                level_no,
                action.value,
                actor.actor_id,
            )
            raise AlreadyProcessedError("This request was already processed, please reload and retry")

    def approve(self, request_id: int, actor: Actor, comment: Optional[str] = None) -> TransitionResult:
        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            level, resolution = self._authorize_current_level(uow, request, actor)

            is_final = level.level == request.total_levels
            new_status = RequestStatus.APPROVED if is_final else RequestStatus.after_level(level.level)
            self._write_level(uow, request, level.level, LevelAction.APPROVED, actor, resolution, comment, new_status)

            updated = self._load(uow, request_id)
            failed = ()
            if is_final:
                failed = run_terminal_side_effect(uow, updated, self._clock())

        logger.info(
            "Request %s level %s approved by %s (%s%s) -> %s",
            updated.request_id,
            level.level,
            actor.actor_id,
            resolution.mode.value,
            f", delegation {resolution.delegation_id}" if resolution.delegation_id else "",
            updated.status.value,
        )
        return TransitionResult(
            request=updated,
            is_final=is_final,
            next_level=None if is_final else level.level + 1,
            resolution=resolution,
            failed_side_effects=failed,
        )

    def reject(self, request_id: int, actor: Actor, comment: Optional[str] = None) -> TransitionResult:
        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            level, resolution = self._authorize_current_level(uow, request, actor)
            self._write_level(
                uow, request, level.level, LevelAction.REJECTED, actor, resolution, comment, RequestStatus.REJECTED
            )
            updated = self._load(uow, request_id)

        logger.info(
            "Request %s rejected at level %s by %s (%s)",
            updated.request_id,
            level.level,
            actor.actor_id,
            resolution.mode.value,
        )
        return TransitionResult(request=updated, is_final=True, resolution=resolution)

    # -------- Cancellation --------
    def cancel_approved(self, request_id: int, actor: Actor, reason: Optional[str]) -> Request:
        """Administrative cancellation of an approved request.

        Balance deductions are left as they are; restoring them is a manual
        ledger adjustment.
        """

        if not actor.is_admin:
            raise ForbiddenError("Only administrators can cancel approved requests")
        reason = require_non_empty(reason, "Cancellation reason")

        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            if request.status != RequestStatus.APPROVED:
                raise InvalidStateError(f"Only approved requests can be cancelled (status: {request.status.value})")
            if not uow.requests.mark_cancelled(
                request.request_id,
                expected=(RequestStatus.APPROVED,),
                cancelled_by=actor.actor_id,
                reason=reason,
                now=self._clock(),
            ):
                raise AlreadyProcessedError("This request was already processed, please reload and retry")
            updated = self._load(uow, request_id)

        logger.info("Approved request %s cancelled by %s", request_id, actor.actor_id)
        return updated

    def withdraw(self, request_id: int, actor: Actor, reason: Optional[str] = None) -> Request:
        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            if request.requester_id != actor.actor_id:
                raise ForbiddenError("Only the requester can withdraw a request")
            if request.status.is_terminal:
                raise InvalidStateError(f"Request {request_id} is already {request.status.value}")
            if not uow.requests.mark_cancelled(
                request.request_id,
                expected=(request.status,),
                cancelled_by=actor.actor_id,
                reason=optional_text(reason),
                now=self._clock(),
            ):
                raise AlreadyProcessedError("This request was already processed, please reload and retry")
            updated = self._load(uow, request_id)

        logger.info("Request %s withdrawn by requester %s", request_id, actor.actor_id)
        return updated

    # -------- Queries --------
    def get_request(self, request_id: int, actor: Actor) -> Request:
        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            if actor.is_admin or request.requester_id == actor.actor_id:
                return request
            if any(lvl.approver_id == actor.actor_id or lvl.acted_by_id == actor.actor_id for lvl in request.levels):
                return request
            level = request.current_level
            if level and self._resolver.resolve(actor.actor_id, request, level, uow.delegations).authorized:
                return request
        raise ForbiddenError("Not allowed to view this request")

    def resolve_approval_rights(self, actor_id: int, request_id: int) -> ApprovalRights:
        with self._uow_factory() as uow:
            request = self._load(uow, request_id)
            level = request.current_level
            if level is None:
                return ApprovalRights(can_approve=False)
            resolution = self._resolver.resolve(int(actor_id), request, level, uow.delegations)
        return ApprovalRights.from_resolution(resolution)

    def list_pending_requests(self, actor: Actor, scope: str = "to_approve", *, limit: int = DEFAULT_LIST_LIMIT) -> list[dict]:
        if scope not in PENDING_SCOPES:
            raise ValidationError(f"Unknown scope {scope!r} (expected one of {', '.join(PENDING_SCOPES)})")
        if scope == "all" and not actor.is_admin:
            raise ForbiddenError("Only administrators can list all requests")

        today = self._clock().date()
        with self._uow_factory() as uow:
            delegator_ids = {d.delegator_id for d in uow.delegations.list_for_delegate(actor.actor_id, active_on=today)}

            if scope == "to_approve":
                requests = uow.requests.list_requests(
                    current_approver_ids={actor.actor_id} | delegator_ids,
                    limit=limit,
                )
            elif scope == "mine":
                requests = uow.requests.list_requests(requester_id=actor.actor_id, limit=limit)
            else:
                requests = uow.requests.list_requests(in_progress_only=True, limit=limit)

            rows = []
            for request in requests:
                level = request.current_level
                resolution = Resolution.denied()
                if level and (level.approver_id == actor.actor_id or level.approver_id in delegator_ids):
                    resolution = self._resolver.resolve(actor.actor_id, request, level, uow.delegations, on_date=today)

                # Delegations can exclude the requester or cap the amount.
                if scope == "to_approve" and not resolution.authorized:
                    continue

                row = request.to_dict()
                row.update(
                    {
                        "next_approver_id": level.approver_id if level else None,
                        "next_approver_name": self._directory.display_name(level.approver_id) if level else None,
                        "is_next_approver": bool(level and level.approver_id == actor.actor_id),
                        "can_approve": resolution.authorized,
                        "via_delegation": resolution.is_delegation,
                        "delegation_id": resolution.delegation_id,
                    }
                )
                rows.append(row)
        return rows
