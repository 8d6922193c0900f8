from __future__ import annotations

import pytest

from src.hr_approvals.hr_approvals.main import create_app
from tests.fakes import HANA, KHOA, LAN, MINH, TUAN, VY


@pytest.fixture
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    return app.test_client()


def _as(actor_id, *capabilities):
    headers = {"X-Actor-Id": str(actor_id)}
    if capabilities:
        headers["X-Capabilities"] = ",".join(capabilities)
    return headers


def _create_leave(client, leave_payload, actor_id=TUAN, **kwargs):
    return client.post(
        "/requests",
        json={"request_type": "leave", "payload": leave_payload(**kwargs)},
        headers=_as(actor_id),
    )


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_missing_actor_header_is_unauthenticated(client):
    resp = client.get("/requests")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthenticated"


def test_leave_request_flows_through_both_levels(client, leave_payload, store):
    created = _create_leave(client, leave_payload)
    assert created.status_code == 201
    body = created.get_json()
    request_id = body["request"]["request_id"]
    assert body["request"]["status"] == "pending"
    assert body["request"]["current_level"] == 1
    assert [lvl["approver_id"] for lvl in body["request"]["levels"]] == [LAN, MINH]

    first = client.post(f"/requests/{request_id}/approve", json={"comment": "ok"}, headers=_as(LAN))
    assert first.status_code == 200
    assert first.get_json()["next_level"] == 2
    assert first.get_json()["resolution"]["mode"] == "direct"

    second = client.post(f"/requests/{request_id}/approve", headers=_as(MINH))
    assert second.status_code == 200
    assert second.get_json()["is_final"] is True
    assert second.get_json()["request"]["status"] == "approved"
    assert second.get_json()["failed_side_effects"] == []
    assert store.balance(TUAN, 1, 2024)["remaining"] == 10


def test_error_mapping(client, leave_payload):
    request_id = _create_leave(client, leave_payload).get_json()["request"]["request_id"]

    bad = client.post("/requests", json={"request_type": "expense", "payload": {}}, headers=_as(TUAN))
    assert bad.status_code == 400

    forbidden = client.post(f"/requests/{request_id}/approve", headers=_as(KHOA))
    assert forbidden.status_code == 403

    missing = client.get("/requests/999", headers=_as(TUAN))
    assert missing.status_code == 404

    overlap = _create_leave(client, leave_payload, start="2024-03-12", end="2024-03-14", days="3")
    assert overlap.status_code == 409
    assert overlap.get_json()["conflict"]["request_id"] == request_id

    client.post(f"/requests/{request_id}/reject", json={"comment": "no"}, headers=_as(LAN))
    again = client.post(f"/requests/{request_id}/approve", headers=_as(MINH))
    assert again.status_code == 409


def test_request_lists_and_rights(client, leave_payload):
    request_id = _create_leave(client, leave_payload).get_json()["request"]["request_id"]

    inbox = client.get("/requests?scope=to_approve", headers=_as(LAN)).get_json()
    assert [r["request_id"] for r in inbox["requests"]] == [request_id]
    assert inbox["requests"][0]["can_approve"] is True

    mine = client.get("/requests?scope=mine", headers=_as(TUAN)).get_json()
    assert [r["request_id"] for r in mine["requests"]] == [request_id]

    assert client.get("/requests?scope=all", headers=_as(TUAN)).status_code == 403
    assert client.get("/requests?scope=all", headers=_as(HANA, "admin")).status_code == 200

    rights = client.get(f"/requests/{request_id}/rights", headers=_as(LAN)).get_json()
    assert rights == {"can_approve": True, "is_delegation": False, "delegation_id": None, "delegator_name": None}


def test_delegated_approval_over_http(client, leave_payload):
    resp = client.post(
        "/delegations",
        json={"delegate_id": VY, "start_date": "2024-03-01", "end_date": "2024-03-10", "delegation_type": "leave"},
        headers=_as(LAN),
    )
    assert resp.status_code == 201
    delegation = resp.get_json()["delegation"]
    assert delegation["current_status"] == "active"
    assert resp.get_json()["subordinate_warning"] is True

    request_id = _create_leave(client, leave_payload).get_json()["request"]["request_id"]
    rights = client.get(f"/requests/{request_id}/rights", headers=_as(VY)).get_json()
    assert rights["is_delegation"] is True
    assert rights["delegator_name"] == "Lan Pham"

    approved = client.post(f"/requests/{request_id}/approve", headers=_as(VY)).get_json()
    level1 = approved["request"]["levels"][0]
    assert level1["acted_by_id"] == VY
    assert level1["delegation_id"] == delegation["delegation_id"]


def test_delegation_endpoints(client):
    created = client.post(
        "/delegations",
        json={"delegate_id": KHOA, "start_date": "2024-03-01", "end_date": "2024-03-10"},
        headers=_as(LAN),
    ).get_json()["delegation"]
    delegation_id = created["delegation_id"]

    conflict = client.post(
        "/delegations",
        json={"delegate_id": VY, "start_date": "2024-03-05", "end_date": "2024-03-06"},
        headers=_as(LAN),
    )
    assert conflict.status_code == 409
    assert conflict.get_json()["conflict"]["delegation_id"] == delegation_id

    patched = client.patch(f"/delegations/{delegation_id}", json={"end_date": "2024-03-15"}, headers=_as(LAN))
    assert patched.status_code == 200
    assert patched.get_json()["end_date"] == "2024-03-15"

    mine = client.get("/delegations?scope=mine&status=active", headers=_as(LAN)).get_json()
    assert [d["delegation_id"] for d in mine["delegations"]] == [delegation_id]
    received = client.get("/delegations?scope=received", headers=_as(KHOA)).get_json()
    assert received["delegations"][0]["delegator_name"] == "Lan Pham"

    assert client.get(f"/delegations/{delegation_id}", headers=_as(TUAN)).status_code == 403

    cancelled = client.post(f"/delegations/{delegation_id}/cancel", json={"reason": "back"}, headers=_as(LAN))
    assert cancelled.get_json()["current_status"] == "cancelled"
    again = client.post(f"/delegations/{delegation_id}/cancel", headers=_as(LAN))
    assert again.status_code == 409


def test_notification_endpoints(client):
    client.post(
        "/delegations",
        json={"delegate_id": KHOA, "start_date": "2024-03-01", "end_date": "2024-03-10"},
        headers=_as(LAN),
    )

    inbox = client.get("/notifications?unread_only=1", headers=_as(KHOA)).get_json()["notifications"]
    assert len(inbox) == 1
    assert inbox[0]["notification_type"] == "delegate_assigned"

    notification_id = inbox[0]["notification_id"]
    assert client.post(f"/notifications/{notification_id}/read", headers=_as(LAN)).status_code == 404
    assert client.post(f"/notifications/{notification_id}/read", headers=_as(KHOA)).status_code == 200
    assert client.get("/notifications?unread_only=1", headers=_as(KHOA)).get_json()["notifications"] == []


def test_leave_day_count_must_match_dates(client, leave_payload, store):
    resp = _create_leave(client, leave_payload, days="50")

    assert resp.status_code == 400
    assert "does not match" in resp.get_json()["message"]
    assert store.rows("requests") == []


def test_non_finite_amounts_are_bad_requests(client):
    overtime = client.post(
        "/requests",
        json={"request_type": "overtime", "payload": {"work_date": "2024-03-06", "estimated_hours": "NaN"}},
        headers=_as(TUAN),
    )
    assert overtime.status_code == 400

    delegation = client.post(
        "/delegations",
        json={"delegate_id": KHOA, "start_date": "2024-03-01", "end_date": "2024-03-10", "max_amount": "NaN"},
        headers=_as(LAN),
    )
    assert delegation.status_code == 400
