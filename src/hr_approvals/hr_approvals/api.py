"""JSON plumbing shared by the controllers.

Authentication happens upstream; the gateway forwards the caller's id and
capabilities in ``X-Actor-Id`` / ``X-Capabilities`` and we trust them.
"""

from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request

from .core.actor import Actor
from .core.exceptions import (
    AlreadyCancelledError,
    AlreadyProcessedError,
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

ACTOR_HEADER = "X-Actor-Id"
CAPABILITIES_HEADER = "X-Capabilities"

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 409),
    (AlreadyCancelledError, 409),
    (AlreadyProcessedError, 409),
)


def actor_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        raw_id = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw_id.isdigit():
            return jsonify({"error": "unauthenticated", "message": f"Missing {ACTOR_HEADER} header"}), 401
        caps = (request.headers.get(CAPABILITIES_HEADER) or "").split(",")
        g.actor = Actor.of(int(raw_id), [c for c in caps if c.strip()])
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> Actor:
    return g.actor


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_flag(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def error_payload(exc: DomainError) -> tuple[dict, int]:
    status = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break

    body = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, ConflictError) and exc.conflict:
        body["conflict"] = exc.conflict
    if isinstance(exc, AlreadyProcessedError):
        body["retry"] = True
    return body, status


def register(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        body, status = error_payload(exc)
        return jsonify(body), status

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})
