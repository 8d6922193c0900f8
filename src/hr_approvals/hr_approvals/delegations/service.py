from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence, Union

from ..common.datetime_utils import Clock, now_local, parse_iso_date
from ..common.validators import optional_text, require_date_range, to_decimal
from ..core.actor import Actor
from ..core.constants import NOTIFICATION_INBOX_LIMIT
from ..core.enums import DelegationStatus, DelegationType, NotificationType, RequestType
from ..core.exceptions import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..directory.repository import Directory, is_report_of
from ..notifications.model import DelegationNotification
from .model import Delegation, DelegationCreated, NewDelegation

if TYPE_CHECKING:
    from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

DELEGATION_SCOPES = ("mine", "received", "all")


def _as_date(value: Union[str, date, None], field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date((value or "").strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def _as_type(value: Union[str, DelegationType, None]) -> DelegationType:
    try:
        return DelegationType(value or DelegationType.ALL.value)
    except ValueError:
        raise ValidationError(f"Unknown delegation type: {value!r}")


def _as_request_type(value: Union[str, RequestType]) -> RequestType:
    try:
        return RequestType(value)
    except ValueError:
        raise ValidationError(f"Unknown request type: {value!r}")


def _as_status(value: Union[str, DelegationStatus, None]) -> Optional[DelegationStatus]:
    if value is None or value == "":
        return None
    try:
        return DelegationStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown delegation status: {value!r}")


def _as_id_set(values: Optional[Iterable[Any]]) -> frozenset[int]:
    try:
        return frozenset(int(v) for v in (values or ()))
    except (TypeError, ValueError):
        raise ValidationError("Excluded employees must be a list of employee ids")


def _as_max_amount(value: Any) -> Optional[Decimal]:
    amount = to_decimal(value, "Max amount")
    if amount is not None and amount < 0:
        raise ValidationError("Max amount cannot be negative")
    return amount


def _conflict_of(existing: Delegation) -> dict:
    return {
        "delegation_id": existing.delegation_id,
        "start_date": existing.start_date.isoformat(),
        "end_date": existing.end_date.isoformat(),
        "delegation_type": existing.delegation_type.value,
    }


class DelegationService:
    def __init__(self, uow_factory: "UnitOfWorkFactory", directory: Directory, clock: Clock = now_local):
        self._uow_factory = uow_factory
        self._directory = directory
        self._clock = clock

    def today(self) -> date:
        return self._clock().date()

    @staticmethod
    def _load(uow: "UnitOfWork", delegation_id: int) -> Delegation:
        delegation = uow.delegations.get(int(delegation_id))
        if not delegation:
            raise NotFoundError(f"Delegation {delegation_id} not found")
        return delegation

    @staticmethod
    def _require_manager(delegation: Delegation, actor: Actor) -> None:
        if actor.actor_id != delegation.delegator_id and not actor.can_manage_delegations:
            raise ForbiddenError("Only the delegator or an administrator can change this delegation")

    def _notify(
        self,
        uow: "UnitOfWork",
        delegation: Delegation,
        *,
        recipient_id: int,
        notification_type: NotificationType,
        message: str,
        now: datetime,
    ) -> bool:
        try:
            with uow.savepoint("delegation_notification"):
                uow.notifications.enqueue(
                    delegation_id=delegation.delegation_id,
                    recipient_id=recipient_id,
                    notification_type=notification_type,
                    message=message,
                    now=now,
                )
        except Exception as exc:
            logger.error(
                "Notification %s for delegation %s to employee %s failed: %s",
                notification_type.value,
                delegation.delegation_id,
                recipient_id,
                exc,
                exc_info=True,
            )
            return False
        return True

    # -------- Commands --------
    def create_delegation(
        self,
        actor: Actor,
        *,
        delegate_id: int,
        start_date: Union[str, date],
        end_date: Union[str, date],
        delegation_type: Union[str, DelegationType, None] = DelegationType.ALL,
        excluded_employee_ids: Optional[Iterable[int]] = None,
        max_amount: Any = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        requires_notification: bool = True,
        delegator_id: Optional[int] = None,
    ) -> DelegationCreated:
        if delegator_id is None or int(delegator_id) == actor.actor_id:
            delegator = actor.actor_id
        elif actor.can_manage_delegations:
            delegator = int(delegator_id)
        else:
            raise ForbiddenError("Only administrators can create delegations for someone else")

        try:
            delegate = int(delegate_id)
        except (TypeError, ValueError):
            raise ValidationError("Delegate is required")
        if delegate == delegator:
            raise ValidationError("You cannot delegate to yourself")

        start = _as_date(start_date, "Start date")
        end = _as_date(end_date, "End date")
        require_date_range(start, end)

        if not self._directory.exists(delegate):
            raise ValidationError(f"Unknown delegate {delegate}")

        new = NewDelegation(
            delegator_id=delegator,
            delegate_id=delegate,
            start_date=start,
            end_date=end,
            delegation_type=_as_type(delegation_type),
            excluded_employee_ids=_as_id_set(excluded_employee_ids),
            max_amount=_as_max_amount(max_amount),
            reason=optional_text(reason),
            notes=optional_text(notes),
            requires_notification=bool(requires_notification),
            created_by=actor.actor_id,
        )
        now = self._clock()

        with self._uow_factory() as uow:
            uow.delegations.lock_delegator(delegator)
            overlapping = uow.delegations.find_overlapping(
                delegator_id=delegator,
                delegation_type=new.delegation_type,
                start_date=start,
                end_date=end,
            )
            if overlapping:
                existing = overlapping[0]
                raise ConflictError(
                    f"An active {existing.delegation_type.value} delegation already covers "
                    f"{existing.start_date:%Y-%m-%d} to {existing.end_date:%Y-%m-%d}",
                    conflict=_conflict_of(existing),
                )

            delegation = self._load(uow, uow.delegations.create(new, now=now))

            notification_failed = False
            if new.requires_notification:
                delegator_name = self._directory.display_name(delegator) or f"employee {delegator}"
                sent = self._notify(
                    uow,
                    delegation,
                    recipient_id=delegate,
                    notification_type=NotificationType.DELEGATE_ASSIGNED,
                    message=(
                        f"You can approve {new.delegation_type.value} requests on behalf of "
                        f"{delegator_name} from {start:%Y-%m-%d} to {end:%Y-%m-%d}"
                    ),
                    now=now,
                )
                if sent:
                    uow.delegations.mark_delegate_notified(delegation.delegation_id)
                    delegation = self._load(uow, delegation.delegation_id)
                notification_failed = not sent

        logger.info(
            "Delegation %s created: %s -> %s (%s, %s..%s)",
            delegation.delegation_id,
            delegator,
            delegate,
            new.delegation_type.value,
            start,
            end,
        )
        return DelegationCreated(
            delegation=delegation,
            subordinate_warning=is_report_of(self._directory, delegate, delegator),
            notification_failed=notification_failed,
        )

    def cancel_delegation(self, delegation_id: int, actor: Actor, reason: Optional[str] = None) -> Delegation:
        now = self._clock()
        with self._uow_factory() as uow:
            delegation = self._load(uow, delegation_id)
            self._require_manager(delegation, actor)
            if not delegation.is_active:
                raise AlreadyCancelledError(f"Delegation {delegation_id} is already cancelled")
            if not uow.delegations.deactivate(
                delegation.delegation_id,
                cancelled_by=actor.actor_id,
                reason=optional_text(reason),
                now=now,
            ):
                raise AlreadyCancelledError(f"Delegation {delegation_id} is already cancelled")

            delegation = self._load(uow, delegation_id)
            delegator_name = self._directory.display_name(delegation.delegator_id) or f"employee {delegation.delegator_id}"
            self._notify(
                uow,
                delegation,
                recipient_id=delegation.delegate_id,
                notification_type=NotificationType.DELEGATION_CANCELLED,
                message=f"Your delegation from {delegator_name} was cancelled",
                now=now,
            )

        logger.info("Delegation %s cancelled by %s", delegation_id, actor.actor_id)
        return delegation

    def update_delegation(
        self,
        delegation_id: int,
        actor: Actor,
        *,
        end_date: Union[str, date, None] = None,
        excluded_employee_ids: Optional[Iterable[int]] = None,
        max_amount: Any = None,
        notes: Optional[str] = None,
    ) -> Delegation:
        today = self.today()
        now = self._clock()
        with self._uow_factory() as uow:
            delegation = self._load(uow, delegation_id)
            self._require_manager(delegation, actor)
            if not delegation.is_active:
                raise InvalidStateError("Cancelled delegations cannot be changed")
            if delegation.status_on(today) == DelegationStatus.EXPIRED:
                raise InvalidStateError("Expired delegations cannot be changed")

            new_end = delegation.end_date if end_date in (None, "") else _as_date(end_date, "End date")
            if new_end < delegation.start_date:
                raise ValidationError("End date must be on or after start date")
            if new_end < today:
                raise ValidationError("End date cannot be in the past")

            if new_end > delegation.end_date:
                uow.delegations.lock_delegator(delegation.delegator_id)
                overlapping = uow.delegations.find_overlapping(
                    delegator_id=delegation.delegator_id,
                    delegation_type=delegation.delegation_type,
                    start_date=delegation.start_date,
                    end_date=new_end,
                    exclude_id=delegation.delegation_id,
                )
                if overlapping:
                    raise ConflictError(
                        "Extending this delegation would overlap another active delegation",
                        conflict=_conflict_of(overlapping[0]),
                    )

            if not uow.delegations.update_terms(
                delegation.delegation_id,
                end_date=new_end,
                excluded_employee_ids=(
                    delegation.excluded_employee_ids
                    if excluded_employee_ids is None
                    else _as_id_set(excluded_employee_ids)
                ),
                max_amount=delegation.max_amount if max_amount is None else _as_max_amount(max_amount),
                notes=delegation.notes if notes is None else optional_text(notes),
                now=now,
            ):
                raise InvalidStateError("Cancelled delegations cannot be changed")
            updated = self._load(uow, delegation_id)

        logger.info("Delegation %s updated by %s", delegation_id, actor.actor_id)
        return updated

    # -------- Queries --------
    def get_delegation(self, delegation_id: int, actor: Actor) -> Delegation:
        with self._uow_factory() as uow:
            delegation = self._load(uow, delegation_id)
        if actor.actor_id not in (delegation.delegator_id, delegation.delegate_id) and not actor.can_manage_delegations:
            raise ForbiddenError("Not allowed to view this delegation")
        return delegation

    def find_active_delegation_for(
        self,
        delegate_id: int,
        delegator_id: int,
        request_type: Union[str, RequestType],
        on_date: Optional[date] = None,
    ) -> Optional[Delegation]:
        with self._uow_factory() as uow:
            candidates = uow.delegations.find_active_candidates(
                delegate_id=int(delegate_id),
                delegator_id=int(delegator_id),
                request_type=_as_request_type(request_type),
                on_date=on_date or self.today(),
            )
        return candidates[0] if candidates else None

    def list_for_delegate(self, actor: Actor, *, active_only: bool = True) -> Sequence[Delegation]:
        with self._uow_factory() as uow:
            return uow.delegations.list_for_delegate(
                actor.actor_id,
                active_on=self.today() if active_only else None,
            )

    def list_for_delegator(
        self,
        actor: Actor,
        *,
        status: Union[str, DelegationStatus, None] = None,
    ) -> Sequence[Delegation]:
        with self._uow_factory() as uow:
            return uow.delegations.list_for_delegator(
                actor.actor_id,
                status=_as_status(status),
                today=self.today(),
            )

    def list_all(
        self,
        actor: Actor,
        *,
        delegator_id: Optional[int] = None,
        delegate_id: Optional[int] = None,
        status: Union[str, DelegationStatus, None] = None,
        delegation_type: Union[str, DelegationType, None] = None,
    ) -> Sequence[Delegation]:
        if not actor.can_manage_delegations:
            raise ForbiddenError("Only administrators can list all delegations")
        with self._uow_factory() as uow:
            return uow.delegations.list_all(
                today=self.today(),
                delegator_id=int(delegator_id) if delegator_id else None,
                delegate_id=int(delegate_id) if delegate_id else None,
                status=_as_status(status),
                delegation_type=_as_type(delegation_type) if delegation_type else None,
            )

    def list_delegations(self, actor: Actor, scope: str = "mine", **filters: Any) -> list[dict]:
        """UI rows for one scope, with names and the derived status."""

        if scope == "mine":
            items = self.list_for_delegator(actor, status=filters.get("status"))
        elif scope == "received":
            items = self.list_for_delegate(actor, active_only=bool(filters.get("active_only", True)))
        elif scope == "all":
            items = self.list_all(actor, **filters)
        else:
            raise ValidationError(f"Unknown scope {scope!r} (expected one of {', '.join(DELEGATION_SCOPES)})")

        today = self.today()
        rows = []
        for d in items:
            row = d.to_dict(today=today)
            row["delegator_name"] = self._directory.display_name(d.delegator_id)
            row["delegate_name"] = self._directory.display_name(d.delegate_id)
            rows.append(row)
        return rows

    # -------- Notifications inbox --------
    def list_notifications(self, actor: Actor, *, unread_only: bool = False) -> Sequence[DelegationNotification]:
        with self._uow_factory() as uow:
            return uow.notifications.list_for_recipient(
                actor.actor_id,
                unread_only=unread_only,
                limit=NOTIFICATION_INBOX_LIMIT,
            )

    def mark_notification_read(self, notification_id: int, actor: Actor) -> None:
        with self._uow_factory() as uow:
            notification = uow.notifications.get(int(notification_id))
            if not notification or notification.recipient_id != actor.actor_id:
                raise NotFoundError(f"Notification {notification_id} not found")
            uow.notifications.mark_read(notification.notification_id, recipient_id=actor.actor_id, now=self._clock())
