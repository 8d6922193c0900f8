"""Terminal side effects of a fully approved request.

Each request type maps to at most one effect. Effects are best-effort: they
run in a savepoint of the caller's unit of work, and a failure is rolled back
to that savepoint, logged, recorded in ``side_effect_failures`` and reported
to the caller while the approval itself still commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from ..core.enums import RequestType, SideEffectKind
from .model import Request
from .payloads import CorrectionPayload, LeavePayload

if TYPE_CHECKING:
    from ..database.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminalSideEffect:
    kind: SideEffectKind
    apply: Callable[["UnitOfWork", Request, datetime], None]


def _deduct_leave_balance(uow: "UnitOfWork", request: Request, now: datetime) -> None:
    payload: LeavePayload = request.payload  # type: ignore[assignment]
    uow.ledger.deduct(
        employee_id=request.requester_id,
        leave_type_id=payload.leave_type_id,
        days=payload.days_requested,
        as_of=now.date(),
    )


def _apply_attendance_correction(uow: "UnitOfWork", request: Request, now: datetime) -> None:
    payload: CorrectionPayload = request.payload  # type: ignore[assignment]
    uow.attendance.apply_correction(
        employee_id=request.requester_id,
        work_date=payload.work_date,
        check_in=payload.requested_check_in,
        check_out=payload.requested_check_out,
        note=payload.reason,
        now=now,
    )


TERMINAL_SIDE_EFFECTS: dict[RequestType, Optional[TerminalSideEffect]] = {
    RequestType.LEAVE: TerminalSideEffect(SideEffectKind.BALANCE_DEDUCTION, _deduct_leave_balance),
    RequestType.CORRECTION: TerminalSideEffect(SideEffectKind.ATTENDANCE_CORRECTION, _apply_attendance_correction),
    RequestType.OVERTIME: None,
}


def _record_failure(uow: "UnitOfWork", request: Request, kind: SideEffectKind, exc: Exception, now: datetime) -> None:
    try:
        with uow.savepoint("side_effect_failure"):
            uow.requests.record_side_effect_failure(
                request_id=request.request_id,
                kind=kind,
                error_message=f"{type(exc).__name__}: {exc}",
                now=now,
            )
    except Exception:
        logger.warning(
            "Could not record %s failure for request %s",
            kind.value,
            request.request_id,
            exc_info=True,
        )


def run_terminal_side_effect(uow: "UnitOfWork", request: Request, now: datetime) -> tuple[SideEffectKind, ...]:
    """Returns the kinds that failed (empty when nothing failed or nothing ran)."""

    effect = TERMINAL_SIDE_EFFECTS.get(request.request_type)
    if effect is None:
        return ()

    try:
        with uow.savepoint("terminal_side_effect"):
            effect.apply(uow, request, now)
    except Exception as exc:
        logger.error(
            "Side effect %s failed for request %s (%s): %s",
            effect.kind.value,
            request.request_id,
            request.request_type.value,
            exc,
            exc_info=True,
        )
        _record_failure(uow, request, effect.kind, exc, now)
        return (effect.kind,)
    return ()
