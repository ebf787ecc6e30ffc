"""
Users API Blueprint

Endpoints:
  GET    /api/v1/users              — list users (user.read)
  GET    /api/v1/users/me           — own profile
  GET    /api/v1/users/<id>         — a user visible to the caller
  GET    /api/v1/users/<id>/team    — direct reports of a manager
  PUT    /api/v1/users/<id>         — update profile (self, user.update, user.manage)
  DELETE /api/v1/users/<id>         — soft delete (user.delete)
"""

from flask import Blueprint, request

from marketplace.blueprints import paginated_response, request_data
from marketplace.middleware.permission_required import (
    authenticated_user,
    require_auth,
    require_permission,
)
from marketplace.services import user_service
from marketplace.utils.errors import api_success

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@users_bp.route("", methods=["GET"])
@require_permission("user.read")
def list_users():
    q = user_service.list_users(
        role=request.args.get("role") or None,
        status=request.args.get("status") or None,
        search=request.args.get("q") or None,
    )
    return paginated_response(q)


@users_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return api_success(authenticated_user().to_dict())


@users_bp.route("/<user_id>", methods=["GET"])
@require_auth
def get_user(user_id):
    return api_success(user_service.view_user(authenticated_user(), user_id).to_dict())


@users_bp.route("/<user_id>/team", methods=["GET"])
@require_auth
def team(user_id):
    manager = user_service.view_user(authenticated_user(), user_id)
    members = user_service.list_team_members(manager.id)
    return api_success([m.to_dict() for m in members])


@users_bp.route("/<user_id>", methods=["PUT", "PATCH"])
@require_auth
def update_user(user_id):
    user = user_service.update_user(authenticated_user(), user_id, request_data())
    return api_success(user.to_dict(), message="User updated")


@users_bp.route("/<user_id>", methods=["DELETE"])
@require_permission("user.delete")
def delete_user(user_id):
    user_service.delete_user(authenticated_user(), user_id)
    return api_success(None, message="User deleted")
