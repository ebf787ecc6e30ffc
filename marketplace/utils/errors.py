"""Standardised API response envelopes.

Usage
-----
    from marketplace.utils.errors import api_error, api_success, E

    return api_success(specialist.to_dict(), status=201)
    return api_error(E.NOT_FOUND, "Specialist not found")
    return api_error(E.VALIDATION, "Invalid payload", details={"title": "required"})

Success: ``{"success": true, "data": ..., "message"?: ...}``
Error:   ``{"success": false, "error": {"code", "message", "path", "method",
          "timestamp", "details"?, "stack"?}}``
"""

from __future__ import annotations

import traceback
from datetime import datetime, timezone

from flask import current_app, jsonify, request


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION = "ERR_VALIDATION"
    INVALID_OR_EXPIRED_TOKEN = "ERR_INVALID_OR_EXPIRED_TOKEN"

    # Authentication – HTTP 401
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    TOKEN_EXPIRED = "ERR_TOKEN_EXPIRED"
    TOKEN_INVALID = "ERR_TOKEN_INVALID"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Request guards
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "ERR_UNSUPPORTED_MEDIA_TYPE"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Storage – HTTP 502
    UPLOAD = "ERR_UPLOAD"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION: 400,
    E.INVALID_OR_EXPIRED_TOKEN: 400,
    E.UNAUTHENTICATED: 401,
    E.TOKEN_EXPIRED: 401,
    E.TOKEN_INVALID: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.RATE_LIMITED: 429,
    E.UPLOAD: 502,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    exc: BaseException | None = None,
):
    """Build a JSON error response in the standard envelope.

    ``stack`` is only included when EXPOSE_ERROR_DETAILS is enabled
    (development) and an exception is supplied.
    """
    body = {
        "code": code,
        "message": message,
        "path": request.path,
        "method": request.method,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    if exc is not None and current_app.config.get("EXPOSE_ERROR_DETAILS"):
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    http_status = status or _DEFAULT_STATUS.get(code, 400)
    return jsonify({"success": False, "error": body}), http_status


def api_success(data=None, *, status: int = 200, message: str | None = None, **extra):
    """Build a JSON success response in the standard envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status
