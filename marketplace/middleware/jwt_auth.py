"""
JWT Auth Middleware — parses the Bearer token and loads the acting user.

Sets on ``flask.g`` for every API request:
    g.current_user  — active User or None
    g.jwt_user_id   — ``sub`` claim of a valid token, else None
    g.auth_error    — the AuthenticationError raised while reading the token

The middleware never rejects a request itself: public endpoints ignore a
missing or bad token, and the ``require_*`` decorators in
``permission_required`` decide what to do with ``g.auth_error``.
"""

import logging

from flask import g, request

from marketplace.core.exceptions import AuthenticationError
from marketplace.services.auth_service import load_active_user
from marketplace.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/refresh",
    "/api/v1/health",
)


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.jwt_user_id = None
        g.auth_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        token = bearer_token()
        if token is None:
            return

        try:
            payload = decode_access_token(token)
            g.jwt_user_id = payload["sub"]
            g.current_user = load_active_user(payload["sub"])
        except AuthenticationError as exc:
            # Non-blocking: route decorators decide
            logger.debug("Rejected bearer token on %s: %s", path, exc.code)
            g.auth_error = exc
