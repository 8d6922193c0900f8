from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.hr_approvals.hr_approvals.core.enums import DelegationStatus, DelegationType, NotificationType
from src.hr_approvals.hr_approvals.core.exceptions import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import HANA, KHOA, LAN, MINH, TUAN, VY


def _create(delegations, actor, delegator=LAN, **overrides):
    params = dict(delegate_id=KHOA, start_date="2024-03-01", end_date="2024-03-10", delegation_type="leave")
    params.update(overrides)
    return delegations.create_delegation(actor(delegator), **params)


def test_create_delegation_stores_terms_and_notifies_delegate(delegations, actor, store):
    created = _create(delegations, actor, excluded_employee_ids=[VY, "5"], max_amount="8", reason="vacation")

    d = created.delegation
    assert d.delegator_id == LAN
    assert d.delegate_id == KHOA
    assert d.start_date == date(2024, 3, 1)
    assert d.end_date == date(2024, 3, 10)
    assert d.delegation_type == DelegationType.LEAVE
    assert d.excluded_employee_ids == frozenset({VY})
    assert d.max_amount == Decimal("8")
    assert d.created_by == LAN
    assert d.notification_sent_to_delegate is True
    assert created.subordinate_warning is False
    assert created.warnings == []

    notes = store.rows("notifications")
    assert len(notes) == 1
    assert notes[0].recipient_id == KHOA
    assert notes[0].notification_type == NotificationType.DELEGATE_ASSIGNED
    assert "Lan Pham" in notes[0].message
    assert store.locked_delegators == [LAN]


def test_overlapping_same_type_delegation_conflicts(delegations, actor):
    first = _create(delegations, actor).delegation

    with pytest.raises(ConflictError) as exc:
        _create(delegations, actor, delegate_id=VY, start_date="2024-03-08", end_date="2024-03-15")

    assert exc.value.conflict == {
        "delegation_id": first.delegation_id,
        "start_date": "2024-03-01",
        "end_date": "2024-03-10",
        "delegation_type": "leave",
    }


def test_touching_windows_conflict(delegations, actor):
    _create(delegations, actor)

    with pytest.raises(ConflictError):
        _create(delegations, actor, start_date="2024-03-10", end_date="2024-03-12")


def test_adjacent_windows_and_other_types_do_not_conflict(delegations, actor):
    _create(delegations, actor)

    _create(delegations, actor, start_date="2024-03-11", end_date="2024-03-12")
    _create(delegations, actor, delegation_type="overtime")
    _create(delegations, actor, delegation_type="all")
    _create(delegations, actor, delegator=MINH)


def test_cancelled_delegation_frees_the_window(delegations, actor):
    first = _create(delegations, actor).delegation
    delegations.cancel_delegation(first.delegation_id, actor(LAN))

    second = _create(delegations, actor, delegate_id=VY)

    assert second.delegation.is_active is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"delegate_id": LAN},
        {"start_date": "2024-03-10", "end_date": "2024-03-01"},
        {"start_date": "03/01/2024"},
        {"delegate_id": 404},
        {"delegate_id": None},
        {"max_amount": "-1"},
        {"max_amount": "lots"},
        {"max_amount": "NaN"},
        {"max_amount": "Infinity"},
        {"max_amount": "-Infinity"},
        {"delegation_type": "payroll"},
        {"excluded_employee_ids": ["x"]},
    ],
)
def test_create_delegation_validation(delegations, actor, overrides):
    with pytest.raises(ValidationError):
        _create(delegations, actor, **overrides)


def test_subordinate_warning(delegations, actor):
    created = _create(delegations, actor, delegate_id=TUAN)

    assert created.subordinate_warning is True
    assert created.warnings == ["Delegate reports to the delegator"]


def test_notification_failure_keeps_delegation(delegations, actor, store):
    store.failing.add("notifications")

    created = _create(delegations, actor)

    assert created.notification_failed is True
    assert created.delegation.notification_sent_to_delegate is False
    assert "Delegate notification could not be queued" in created.warnings
    assert store.tables["delegations"][created.delegation.delegation_id].is_active is True


def test_no_notification_when_not_required(delegations, actor, store):
    created = _create(delegations, actor, requires_notification=False)

    assert created.delegation.notification_sent_to_delegate is False
    assert store.rows("notifications") == []


def test_create_on_behalf_requires_admin(delegations, actor):
    with pytest.raises(ForbiddenError):
        delegations.create_delegation(
            actor(VY), delegator_id=LAN, delegate_id=KHOA, start_date="2024-03-01", end_date="2024-03-02"
        )

    created = delegations.create_delegation(
        actor(HANA, "delegation_admin"),
        delegator_id=LAN,
        delegate_id=KHOA,
        start_date="2024-03-01",
        end_date="2024-03-02",
    )
    assert created.delegation.delegator_id == LAN
    assert created.delegation.created_by == HANA
    assert created.delegation.delegation_type == DelegationType.ALL


def test_cancel_delegation_checks_and_notifies(delegations, actor, store):
    d = _create(delegations, actor).delegation

    with pytest.raises(NotFoundError):
        delegations.cancel_delegation(999, actor(LAN))
    with pytest.raises(ForbiddenError):
        delegations.cancel_delegation(d.delegation_id, actor(KHOA))

    cancelled = delegations.cancel_delegation(d.delegation_id, actor(LAN), "back early")
    assert cancelled.is_active is False
    assert cancelled.cancelled_by == LAN
    assert cancelled.cancellation_reason == "back early"
    assert cancelled.status_on(date(2024, 3, 5)) == DelegationStatus.CANCELLED

    types = [n.notification_type for n in store.rows("notifications")]
    assert types == [NotificationType.DELEGATE_ASSIGNED, NotificationType.DELEGATION_CANCELLED]

    with pytest.raises(AlreadyCancelledError):
        delegations.cancel_delegation(d.delegation_id, actor(LAN))


def test_admin_can_cancel_any_delegation(delegations, actor):
    d = _create(delegations, actor).delegation

    cancelled = delegations.cancel_delegation(d.delegation_id, actor(HANA, "admin"))

    assert cancelled.cancelled_by == HANA


def test_update_delegation_extends_and_adjusts_terms(delegations, actor):
    d = _create(delegations, actor).delegation

    updated = delegations.update_delegation(
        d.delegation_id,
        actor(LAN),
        end_date="2024-03-20",
        excluded_employee_ids=[TUAN],
        max_amount="2.5",
        notes="extended",
    )

    assert updated.end_date == date(2024, 3, 20)
    assert updated.excluded_employee_ids == frozenset({TUAN})
    assert updated.max_amount == Decimal("2.5")
    assert updated.notes == "extended"


def test_update_delegation_rejects_overlapping_extension(delegations, actor):
    d = _create(delegations, actor).delegation
    later = _create(delegations, actor, start_date="2024-03-15", end_date="2024-03-20").delegation

    with pytest.raises(ConflictError) as exc:
        delegations.update_delegation(d.delegation_id, actor(LAN), end_date="2024-03-16")

    assert exc.value.conflict["delegation_id"] == later.delegation_id


def test_update_delegation_guards(delegations, actor, clock):
    d = _create(delegations, actor).delegation

    with pytest.raises(ForbiddenError):
        delegations.update_delegation(d.delegation_id, actor(KHOA), notes="mine now")
    with pytest.raises(ValidationError):
        delegations.update_delegation(d.delegation_id, actor(LAN), end_date="2024-02-20")
    with pytest.raises(ValidationError):
        delegations.update_delegation(d.delegation_id, actor(LAN), end_date="2024-03-04")

    clock.set_date(date(2024, 3, 11))
    with pytest.raises(InvalidStateError):
        delegations.update_delegation(d.delegation_id, actor(LAN), end_date="2024-03-30")

    clock.set_date(date(2024, 3, 5))
    delegations.cancel_delegation(d.delegation_id, actor(LAN))
    with pytest.raises(InvalidStateError):
        delegations.update_delegation(d.delegation_id, actor(LAN), notes="too late")


def test_get_delegation_access(delegations, actor):
    d = _create(delegations, actor).delegation

    assert delegations.get_delegation(d.delegation_id, actor(LAN)) == d
    assert delegations.get_delegation(d.delegation_id, actor(KHOA)).delegation_id == d.delegation_id
    assert delegations.get_delegation(d.delegation_id, actor(HANA, "admin")).delegation_id == d.delegation_id
    with pytest.raises(ForbiddenError):
        delegations.get_delegation(d.delegation_id, actor(TUAN))
    with pytest.raises(NotFoundError):
        delegations.get_delegation(123, actor(LAN))


def test_find_active_delegation_prefers_specific_type(delegations, actor):
    _create(delegations, actor, delegation_type="all")
    specific = _create(delegations, actor, delegation_type="leave").delegation

    found = delegations.find_active_delegation_for(KHOA, LAN, "leave")
    assert found.delegation_id == specific.delegation_id

    assert delegations.find_active_delegation_for(KHOA, LAN, "overtime").delegation_type == DelegationType.ALL
    assert delegations.find_active_delegation_for(KHOA, LAN, "leave", on_date=date(2024, 4, 1)) is None
    assert delegations.find_active_delegation_for(VY, LAN, "leave") is None


@pytest.mark.parametrize("request_type", ["payroll", "", None])
def test_find_active_delegation_rejects_unknown_request_type(delegations, actor, request_type):
    _create(delegations, actor, delegation_type="all")

    with pytest.raises(ValidationError):
        delegations.find_active_delegation_for(KHOA, LAN, request_type)


def test_listing_derives_status_from_clock(delegations, actor):
    active = _create(delegations, actor).delegation
    upcoming = _create(delegations, actor, start_date="2024-04-01", end_date="2024-04-05").delegation
    expired = _create(delegations, actor, start_date="2024-02-01", end_date="2024-02-05").delegation
    cancelled = _create(delegations, actor, start_date="2024-05-01", end_date="2024-05-05").delegation
    delegations.cancel_delegation(cancelled.delegation_id, actor(LAN))

    by_status = {
        status: [d.delegation_id for d in delegations.list_for_delegator(actor(LAN), status=status)]
        for status in ("active", "upcoming", "expired", "cancelled")
    }
    assert by_status == {
        "active": [active.delegation_id],
        "upcoming": [upcoming.delegation_id],
        "expired": [expired.delegation_id],
        "cancelled": [cancelled.delegation_id],
    }
    assert len(delegations.list_for_delegator(actor(LAN))) == 4

    received = delegations.list_for_delegate(actor(KHOA))
    assert [d.delegation_id for d in received] == [active.delegation_id]
    assert len(delegations.list_for_delegate(actor(KHOA), active_only=False)) == 4

    with pytest.raises(ValidationError):
        delegations.list_for_delegator(actor(LAN), status="paused")


def test_list_all_requires_admin_and_filters(delegations, actor):
    _create(delegations, actor)
    _create(delegations, actor, delegator=MINH, delegate_id=VY, delegation_type="overtime")

    with pytest.raises(ForbiddenError):
        delegations.list_all(actor(LAN))

    admin = actor(HANA, "admin")
    assert len(delegations.list_all(admin)) == 2
    assert [d.delegator_id for d in delegations.list_all(admin, delegator_id=MINH)] == [MINH]
    assert [d.delegate_id for d in delegations.list_all(admin, delegate_id=KHOA)] == [KHOA]
    assert len(delegations.list_all(admin, delegation_type="overtime")) == 1
    assert len(delegations.list_all(admin, status="expired")) == 0


def test_list_delegations_rows_have_names_and_status(delegations, actor):
    _create(delegations, actor)

    rows = delegations.list_delegations(actor(LAN), "mine")
    assert rows[0]["delegator_name"] == "Lan Pham"
    assert rows[0]["delegate_name"] == "Khoa Bui"
    assert rows[0]["current_status"] == "active"

    assert len(delegations.list_delegations(actor(KHOA), "received")) == 1
    assert len(delegations.list_delegations(actor(HANA, "admin"), "all", status="active")) == 1
    with pytest.raises(ValidationError):
        delegations.list_delegations(actor(LAN), "team")


def test_notifications_inbox_and_mark_read(delegations, actor):
    _create(delegations, actor)
    _create(delegations, actor, delegation_type="overtime")

    inbox = delegations.list_notifications(actor(KHOA))
    assert len(inbox) == 2
    assert all(n.recipient_id == KHOA for n in inbox)

    with pytest.raises(NotFoundError):
        delegations.mark_notification_read(inbox[0].notification_id, actor(LAN))

    delegations.mark_notification_read(inbox[0].notification_id, actor(KHOA))
    unread = delegations.list_notifications(actor(KHOA), unread_only=True)
    assert [n.notification_id for n in unread] == [inbox[1].notification_id]


@pytest.mark.parametrize("max_amount", ["NaN", "Infinity", "-5"])
def test_update_delegation_rejects_bad_max_amount(delegations, actor, max_amount):
    d = _create(delegations, actor, max_amount="4").delegation

    with pytest.raises(ValidationError):
        delegations.update_delegation(d.delegation_id, actor(LAN), max_amount=max_amount)

    assert delegations.get_delegation(d.delegation_id, actor(LAN)).max_amount == Decimal("4")
