from __future__ import annotations

from flask import Flask, jsonify, request

from ..api import actor_required, current_actor, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    workflow = container.workflow

    @app.route("/requests", methods=["POST"], endpoint="create_request")
    @actor_required
    def create_request():
        data = json_body()
        result = workflow.create_request(current_actor(), data.get("request_type") or "", data.get("payload"))
        return jsonify(result.to_dict()), 201

    @app.route("/requests", methods=["GET"], endpoint="list_requests")
    @actor_required
    def list_requests():
        scope = request.args.get("scope", "to_approve")
        rows = workflow.list_pending_requests(current_actor(), scope)
        return jsonify({"scope": scope, "requests": rows})

    @app.route("/requests/<int:request_id>", methods=["GET"], endpoint="get_request")
    @actor_required
    def get_request(request_id: int):
        return jsonify(workflow.get_request(request_id, current_actor()).to_dict())

    @app.route("/requests/<int:request_id>/rights", methods=["GET"], endpoint="approval_rights")
    @actor_required
    def approval_rights(request_id: int):
        rights = workflow.resolve_approval_rights(current_actor().actor_id, request_id)
        return jsonify(rights.to_dict())

    @app.route("/requests/<int:request_id>/approve", methods=["POST"], endpoint="approve_request")
    @actor_required
    def approve_request(request_id: int):
        result = workflow.approve(request_id, current_actor(), json_body().get("comment"))
        return jsonify(result.to_dict())

    @app.route("/requests/<int:request_id>/reject", methods=["POST"], endpoint="reject_request")
    @actor_required
    def reject_request(request_id: int):
        result = workflow.reject(request_id, current_actor(), json_body().get("comment"))
        return jsonify(result.to_dict())

    @app.route("/requests/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_approved_request")
    @actor_required
    def cancel_approved_request(request_id: int):
        req = workflow.cancel_approved(request_id, current_actor(), json_body().get("reason"))
        return jsonify(req.to_dict())

    @app.route("/requests/<int:request_id>/withdraw", methods=["POST"], endpoint="withdraw_request")
    @actor_required
    def withdraw_request(request_id: int):
        req = workflow.withdraw(request_id, current_actor(), json_body().get("reason"))
        return jsonify(req.to_dict())
