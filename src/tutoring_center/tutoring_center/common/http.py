from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    PaymentRequiredError,
    ValidationError,
)
from .validators import require_positive_id

logger = logging.getLogger(__name__)


def role_required(*roles: Role):
    """Reject the request unless the session carries one of ``roles``.

    The login flow populates ``session["user_id"]`` and ``session["role"]``.
    """
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"error": "unauthorized", "message": "Login required"}), 401
            if allowed and session.get("role") not in allowed:
                return jsonify({"error": "forbidden", "message": "Insufficient role"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> int:
    return int(session["user_id"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def required(data: dict, key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValidationError(f"{key} is required")
    return value


def required_id(data: dict, key: str) -> int:
    return require_positive_id(required(data, key), key)


def optional_arg(name: str) -> Optional[str]:
    value = request.args.get(name)
    return value.strip() if value and value.strip() else None


def _error(kind: str, e: Exception, status: int):
    return jsonify({"error": kind, "message": str(e)}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e):
        return _error("validation", e, 400)

    @app.errorhandler(PaymentRequiredError)
    def _payment_required(e):
        body = {"error": "payment_required", "message": str(e), "student_id": e.student_id}
        if e.cycle_start:
            body["cycle_start"] = e.cycle_start.isoformat()
        if e.cycle_end:
            body["cycle_end"] = e.cycle_end.isoformat()
        return jsonify(body), 402

    @app.errorhandler(ForbiddenError)
    def _forbidden(e):
        return _error("forbidden", e, 403)

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return _error("not_found", e, 404)

    @app.errorhandler(ConflictError)
    def _conflict(e):
        return _error("conflict", e, 409)

    @app.errorhandler(DomainError)
    def _domain(e):
        return _error("domain", e, 400)

    @app.errorhandler(Exception)
    def _unexpected(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "internal", "message": "Internal server error"}), 500
