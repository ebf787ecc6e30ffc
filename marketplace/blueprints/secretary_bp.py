"""
Secretaries API Blueprint

Endpoints:
  GET    /api/v1/secretaries               — list (status, is_verified, accepting=companies|specialists)
  GET    /api/v1/secretaries/<id>          — single profile
  GET    /api/v1/secretaries/<id>/stats    — workload and counters
  POST   /api/v1/secretaries               — create User + profile (multipart avatar / banner)
  PUT    /api/v1/secretaries/<id>          — update profile (self or secretary.update)
  PATCH  /api/v1/secretaries/<id>/verify   — set is_verified (super_admin)
  DELETE /api/v1/secretaries/<id>          — soft delete
"""

from flask import Blueprint, request

from marketplace.blueprints import bool_arg, paginated_response, request_data
from marketplace.core.exceptions import ValidationError
from marketplace.middleware.permission_required import (
    authenticated_user,
    require_auth,
    require_permission,
    require_role,
)
from marketplace.models.enums import Role
from marketplace.services import secretary_service
from marketplace.utils.errors import api_success

secretaries_bp = Blueprint("secretaries", __name__, url_prefix="/api/v1/secretaries")


@secretaries_bp.route("", methods=["GET"])
@require_permission("secretary.read")
def list_secretaries():
    accepting = request.args.get("accepting") or None
    if accepting not in (None, secretary_service.COMPANIES, secretary_service.SPECIALISTS):
        raise ValidationError(
            "accepting must be 'companies' or 'specialists'", details={"accepting": accepting}
        )
    q = secretary_service.list_secretaries(
        status=request.args.get("status") or None,
        is_verified=bool_arg("is_verified"),
        accepting=accepting,
    )
    return paginated_response(q, lambda s: s.to_dict(include_user=True))


@secretaries_bp.route("/<secretary_id>", methods=["GET"])
@require_auth
def get_secretary(secretary_id):
    sec = secretary_service.get_secretary(secretary_id)
    return api_success(sec.to_dict(include_user=True))


@secretaries_bp.route("/<secretary_id>/stats", methods=["GET"])
@require_permission("secretary.read")
def stats(secretary_id):
    return api_success(secretary_service.stats(secretary_id))


@secretaries_bp.route("", methods=["POST"])
@require_permission("secretary.create")
def create_secretary():
    sec = secretary_service.create_with_user(
        authenticated_user(),
        request_data(),
        avatar=request.files.get("avatar"),
        banner=request.files.get("banner"),
    )
    return api_success(sec.to_dict(include_user=True), status=201, message="Secretary created")


@secretaries_bp.route("/<secretary_id>", methods=["PUT", "PATCH"])
@require_auth
def update_secretary(secretary_id):
    sec = secretary_service.update_secretary(
        authenticated_user(),
        secretary_id,
        request_data(),
        avatar=request.files.get("avatar"),
        banner=request.files.get("banner"),
    )
    return api_success(sec.to_dict(include_user=True), message="Secretary updated")


@secretaries_bp.route("/<secretary_id>/verify", methods=["PATCH"])
@require_role(Role.SUPER_ADMIN)
def verify_secretary(secretary_id):
    data = request_data()
    is_verified = data.get("is_verified", True)
    if not isinstance(is_verified, bool):
        raise ValidationError("is_verified must be a boolean", details={"is_verified": is_verified})
    sec = secretary_service.verify_secretary(
        authenticated_user(), secretary_id, is_verified=is_verified, notes=data.get("notes")
    )
    return api_success(sec.to_dict(), message="Verification updated")


@secretaries_bp.route("/<secretary_id>", methods=["DELETE"])
@require_permission("secretary.delete")
def delete_secretary(secretary_id):
    secretary_service.delete_secretary(authenticated_user(), secretary_id)
    return api_success(None, message="Secretary deleted")
