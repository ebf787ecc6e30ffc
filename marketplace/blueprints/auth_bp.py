"""
Auth API Blueprint

Endpoints:
  POST /api/v1/auth/register         — create an account (JSON or multipart with profile_image)
  POST /api/v1/auth/login            — credentials → access token (+ refresh cookie)
  POST /api/v1/auth/refresh          — refresh cookie → new access token
  POST /api/v1/auth/logout           — clear the refresh cookie
  POST /api/v1/auth/change-password  — verify current password, set a new one
  POST /api/v1/auth/forgot-password  — request a reset token (always the same reply)
  POST /api/v1/auth/reset-password   — consume a reset token
  GET  /api/v1/auth/me               — the authenticated user

The refresh token is only ever delivered in an HTTP-only cookie.
"""

import logging

from flask import Blueprint, current_app, request

from marketplace.blueprints import request_data
from marketplace.core.exceptions import AuthenticationError
from marketplace.middleware.permission_required import authenticated_user, require_auth
from marketplace.services import auth_service, jwt_service
from marketplace.services.permission_service import get_effective_permissions
from marketplace.utils.errors import api_success

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

RESET_REQUESTED_MESSAGE = "If that email is registered, a password reset link has been sent"


# ═══════════════════════════════════════════════════════════════
# Cookie helpers
# ═══════════════════════════════════════════════════════════════
def _cookie_name():
    return current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token")


def _cookie_path():
    return auth_bp.url_prefix


def _token_response(user, tokens, status=200, message=None):
    response, code = api_success(
        {
            "user": user.to_dict(),
            "permissions": sorted(get_effective_permissions(user)),
            "access_token": tokens["access_token"],
            "token_type": tokens["token_type"],
            "expires_in": tokens["expires_in"],
        },
        status=status,
        message=message,
    )
    response.set_cookie(
        _cookie_name(),
        tokens["refresh_token"],
        max_age=jwt_service.get_refresh_expires(),
        httponly=True,
        secure=current_app.config.get("REFRESH_COOKIE_SECURE", False),
        samesite="Strict",
        path=_cookie_path(),
    )
    return response, code


# ═══════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/register", methods=["POST"])
def register():
    data = request_data()
    user, tokens = auth_service.register(data, profile_image=request.files.get("profile_image"))
    return _token_response(user, tokens, status=201, message="Registration successful")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request_data()
    user, tokens = auth_service.login(data.get("email"), data.get("password"))
    return _token_response(user, tokens, message="Login successful")


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    token = request.cookies.get(_cookie_name())
    if not token:
        token = (request.get_json(silent=True) or {}).get("refresh_token")
    if not token:
        raise AuthenticationError("Refresh token is required")
    user, tokens = auth_service.refresh(token)
    return _token_response(user, tokens)


@auth_bp.route("/logout", methods=["POST"])
def logout():
    response, code = api_success(None, message="Logged out")
    response.delete_cookie(
        _cookie_name(),
        path=_cookie_path(),
        httponly=True,
        secure=current_app.config.get("REFRESH_COOKIE_SECURE", False),
        samesite="Strict",
    )
    return response, code


@auth_bp.route("/change-password", methods=["POST"])
@require_auth
def change_password():
    data = request_data()
    auth_service.change_password(
        authenticated_user(), data.get("current_password"), data.get("new_password")
    )
    return api_success(None, message="Password changed")


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = request_data()
    # The raw token never appears in the response
    auth_service.request_password_reset(data.get("email"))
    return api_success(None, message=RESET_REQUESTED_MESSAGE)


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = request_data()
    auth_service.consume_password_reset_token(data.get("token"), data.get("new_password"))
    return api_success(None, message="Password has been reset")


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    user = authenticated_user()
    return api_success({
        "user": user.to_dict(),
        "permissions": sorted(get_effective_permissions(user)),
    })
