"""
Permission Decorators — JWT-aware RBAC decorators for route protection.

Usage:
    @bp.route("/specialists", methods=["POST"])
    @require_permission("specialist.create")
    def create_specialist():
        actor = current_user()
        ...

    @bp.route("/specialists/<specialist_id>/verify", methods=["PATCH"])
    @require_role(Role.SUPER_ADMIN)
    def verify_specialist(specialist_id):
        ...

Decorators raise typed errors (401 / 403); the app-level error handler
turns them into the standard envelope.
"""

import functools
import logging

from flask import g

from marketplace.core.exceptions import AuthenticationError
from marketplace.services import permission_service

logger = logging.getLogger(__name__)


def current_user():
    """The authenticated User of this request, or None."""
    return getattr(g, "current_user", None)


def authenticated_user():
    """The authenticated User; raises AuthenticationError when absent."""
    user = current_user()
    if user is None:
        raise getattr(g, "auth_error", None) or AuthenticationError("Authentication required")
    return user


def require_auth(f):
    """Decorator: require any authenticated, active user."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        authenticated_user()
        return f(*args, **kwargs)
    return decorated


def require_permission(codename: str):
    """
    Decorator: require the JWT user to hold a specific permission.

    Super-admins pass every check.

    Args:
        codename: Permission codename, e.g. "specialist.create"
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            permission_service.require_permission(authenticated_user(), codename)
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_any_permission(*codenames: str):
    """Decorator: require at least ONE of the listed permissions."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            permission_service.require_any_permission(authenticated_user(), *codenames)
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_role(*roles):
    """Decorator: require the user's role to be one of ``roles``."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            permission_service.require_role(authenticated_user(), roles)
            return f(*args, **kwargs)
        return decorated
    return decorator
