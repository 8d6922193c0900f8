from __future__ import annotations

from flask import Flask, jsonify, request

from ..api import actor_required, current_actor, json_body, query_flag
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.delegation_service

    @app.route("/delegations", methods=["POST"], endpoint="create_delegation")
    @actor_required
    def create_delegation():
        data = json_body()
        created = service.create_delegation(
            current_actor(),
            delegate_id=data.get("delegate_id"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            delegation_type=data.get("delegation_type"),
            excluded_employee_ids=data.get("excluded_employee_ids"),
            max_amount=data.get("max_amount"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            requires_notification=bool(data.get("requires_notification", True)),
            delegator_id=data.get("delegator_id"),
        )
        return (
            jsonify(
                {
                    "delegation": created.delegation.to_dict(today=service.today()),
                    "subordinate_warning": created.subordinate_warning,
                    "warnings": created.warnings,
                }
            ),
            201,
        )

    @app.route("/delegations", methods=["GET"], endpoint="list_delegations")
    @actor_required
    def list_delegations():
        scope = request.args.get("scope", "mine")
        filters: dict = {}
        if scope == "received":
            filters["active_only"] = query_flag("active_only", True)
        else:
            filters["status"] = request.args.get("status") or None
        if scope == "all":
            filters.update(
                delegator_id=request.args.get("delegator_id", type=int),
                delegate_id=request.args.get("delegate_id", type=int),
                delegation_type=request.args.get("delegation_type") or None,
            )
        rows = service.list_delegations(current_actor(), scope, **filters)
        return jsonify({"scope": scope, "delegations": rows})

    @app.route("/delegations/<int:delegation_id>", methods=["GET"], endpoint="get_delegation")
    @actor_required
    def get_delegation(delegation_id: int):
        return jsonify(service.get_delegation(delegation_id, current_actor()).to_dict(today=service.today()))

    @app.route("/delegations/<int:delegation_id>", methods=["PATCH"], endpoint="update_delegation")
    @actor_required
    def update_delegation(delegation_id: int):
        data = json_body()
        updated = service.update_delegation(
            delegation_id,
            current_actor(),
            end_date=data.get("end_date"),
            excluded_employee_ids=data.get("excluded_employee_ids"),
            max_amount=data.get("max_amount"),
            notes=data.get("notes"),
        )
        return jsonify(updated.to_dict(today=service.today()))

    @app.route("/delegations/<int:delegation_id>/cancel", methods=["POST"], endpoint="cancel_delegation")
    @actor_required
    def cancel_delegation(delegation_id: int):
        cancelled = service.cancel_delegation(delegation_id, current_actor(), json_body().get("reason"))
        return jsonify(cancelled.to_dict(today=service.today()))

    @app.route("/notifications", methods=["GET"], endpoint="list_notifications")
    @actor_required
    def list_notifications():
        items = service.list_notifications(current_actor(), unread_only=query_flag("unread_only"))
        return jsonify({"notifications": [n.to_dict() for n in items]})

    @app.route("/notifications/<int:notification_id>/read", methods=["POST"], endpoint="mark_notification_read")
    @actor_required
    def mark_notification_read(notification_id: int):
        service.mark_notification_read(notification_id, current_actor())
        return jsonify({"ok": True})
