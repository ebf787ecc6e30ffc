"""
Media API Blueprint

Endpoints:
  GET    /api/v1/media/specialist/<specialist_id>  — media of a visible listing, by display_order
  GET    /api/v1/media/<media_id>                  — single item
  POST   /api/v1/media                             — multipart upload (file, specialist_id, media_type, display_order)
  PATCH  /api/v1/media/<media_id>                  — reorder / retype
  DELETE /api/v1/media/<media_id>                  — soft delete
"""

from flask import Blueprint, request

from marketplace.blueprints import request_data
from marketplace.core.exceptions import ValidationError
from marketplace.middleware.permission_required import (
    authenticated_user,
    current_user,
    require_permission,
)
from marketplace.services import media_service
from marketplace.utils.errors import api_success

media_bp = Blueprint("media", __name__, url_prefix="/api/v1/media")


@media_bp.route("/specialist/<specialist_id>", methods=["GET"])
def list_for_specialist(specialist_id):
    items = media_service.list_for_specialist(current_user(), specialist_id)
    return api_success([m.to_dict() for m in items])


@media_bp.route("/<media_id>", methods=["GET"])
def get_media(media_id):
    return api_success(media_service.get_media(current_user(), media_id).to_dict())


@media_bp.route("", methods=["POST"])
@require_permission("media.upload")
def upload():
    data = request.form.to_dict()
    specialist_id = data.get("specialist_id")
    if not specialist_id:
        raise ValidationError("specialist_id is required", details={"specialist_id": "required"})
    media = media_service.upload_media(
        authenticated_user(), specialist_id, request.files.get("file"), data
    )
    return api_success(media.to_dict(), status=201, message="Media uploaded")


@media_bp.route("/<media_id>", methods=["PATCH"])
@require_permission("media.upload")
def update(media_id):
    media = media_service.update_media(authenticated_user(), media_id, request_data())
    return api_success(media.to_dict(), message="Media updated")


@media_bp.route("/<media_id>", methods=["DELETE"])
@require_permission("media.delete")
def delete(media_id):
    media_service.delete_media(authenticated_user(), media_id)
    return api_success(None, message="Media deleted")
