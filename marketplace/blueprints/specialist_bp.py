"""
Specialists API Blueprint

Endpoints:
  GET    /api/v1/specialists                    — public listing (published + verified)
  GET    /api/v1/specialists/admin              — listing for the caller (super_admin: everything)
  GET    /api/v1/specialists/mine               — caller's own listings
  GET    /api/v1/specialists/search?q=          — keyword search over visible listings
  GET    /api/v1/specialists/assigned           — listings assigned to the calling secretary
  GET    /api/v1/specialists/stats              — total / published / draft counts
  GET    /api/v1/specialists/<id_or_slug>       — single listing (hidden drafts → 404)
  POST   /api/v1/specialists                    — create a draft
  PUT    /api/v1/specialists/<id>               — update content / pricing
  DELETE /api/v1/specialists/<id>               — soft delete
  PATCH  /api/v1/specialists/<id>/publish       — is_draft = false
  PATCH  /api/v1/specialists/<id>/unpublish     — is_draft = true
  PATCH  /api/v1/specialists/<id>/verify        — set verification_status (super_admin)
  PATCH  /api/v1/specialists/<id>/rating        — submit a 1–5 rating
  PATCH  /api/v1/specialists/<id>/secretary     — assign / unassign a secretary
"""

from flask import Blueprint, request

from marketplace.blueprints import bool_arg, paginated_response, request_data
from marketplace.middleware.permission_required import (
    authenticated_user,
    current_user,
    require_auth,
    require_permission,
    require_role,
)
from marketplace.models.enums import Role
from marketplace.services import specialist_service
from marketplace.utils.errors import api_success

specialists_bp = Blueprint("specialists", __name__, url_prefix="/api/v1/specialists")


def _serialize(spec):
    return spec.to_dict()


# ── Listings ─────────────────────────────────────────────────────────────

@specialists_bp.route("", methods=["GET"])
def list_public():
    q = specialist_service.list_public(status=request.args.get("status") or None)
    return paginated_response(q, _serialize)


@specialists_bp.route("/admin", methods=["GET"])
@require_auth
def list_for_actor():
    q = specialist_service.list_for_actor(
        authenticated_user(),
        status=request.args.get("status") or None,
        verification_status=request.args.get("verification_status") or None,
        is_draft=bool_arg("is_draft"),
    )
    return paginated_response(q, _serialize)


@specialists_bp.route("/mine", methods=["GET"])
@require_auth
def list_mine():
    return paginated_response(specialist_service.list_mine(authenticated_user()), _serialize)


@specialists_bp.route("/search", methods=["GET"])
def search():
    q = specialist_service.search(request.args.get("q"), current_user())
    return paginated_response(q, _serialize)


@specialists_bp.route("/assigned", methods=["GET"])
@require_role(Role.SECRETARY, Role.SUPER_ADMIN)
def list_assigned():
    return paginated_response(specialist_service.list_assigned(authenticated_user()), _serialize)


@specialists_bp.route("/stats", methods=["GET"])
@require_auth
def stats():
    return api_success(specialist_service.stats(authenticated_user()))


@specialists_bp.route("/<id_or_slug>", methods=["GET"])
def get_specialist(id_or_slug):
    spec = specialist_service.get_visible(current_user(), id_or_slug)
    return api_success(spec.to_dict(include_media=True))


# ── Mutations ────────────────────────────────────────────────────────────

@specialists_bp.route("", methods=["POST"])
@require_permission("specialist.create")
def create_specialist():
    spec = specialist_service.create_specialist(authenticated_user(), request_data())
    return api_success(spec.to_dict(), status=201, message="Specialist created")


@specialists_bp.route("/<specialist_id>", methods=["PUT", "PATCH"])
@require_auth
def update_specialist(specialist_id):
    spec = specialist_service.update_specialist(authenticated_user(), specialist_id, request_data())
    return api_success(spec.to_dict(), message="Specialist updated")


@specialists_bp.route("/<specialist_id>", methods=["DELETE"])
@require_auth
def delete_specialist(specialist_id):
    specialist_service.delete_specialist(authenticated_user(), specialist_id)
    return api_success(None, message="Specialist deleted")


@specialists_bp.route("/<specialist_id>/publish", methods=["PATCH"])
@require_permission("specialist.publish")
def publish(specialist_id):
    spec = specialist_service.publish(authenticated_user(), specialist_id)
    return api_success(spec.to_dict(), message="Specialist published")


@specialists_bp.route("/<specialist_id>/unpublish", methods=["PATCH"])
@require_permission("specialist.publish")
def unpublish(specialist_id):
    spec = specialist_service.unpublish(authenticated_user(), specialist_id)
    return api_success(spec.to_dict(), message="Specialist unpublished")


@specialists_bp.route("/<specialist_id>/verify", methods=["PATCH"])
@require_role(Role.SUPER_ADMIN)
def verify(specialist_id):
    data = request_data()
    spec = specialist_service.verify(
        authenticated_user(), specialist_id, data.get("verification_status") or data.get("status")
    )
    return api_success(spec.to_dict(), message="Verification status updated")


@specialists_bp.route("/<specialist_id>/rating", methods=["PATCH"])
@require_auth
def rate(specialist_id):
    data = request_data()
    spec = specialist_service.rate(authenticated_user(), specialist_id, data.get("rating"))
    return api_success(spec.to_dict(), message="Rating recorded")


@specialists_bp.route("/<specialist_id>/secretary", methods=["PATCH"])
@require_auth
def assign_secretary(specialist_id):
    data = request_data()
    spec = specialist_service.assign_secretary(
        authenticated_user(), specialist_id, data.get("secretary_id")
    )
    return api_success(spec.to_dict(), message="Secretary assignment updated")
