"""
Service catalog API Blueprints

Service master:
  GET    /api/v1/service-master           — list (q= title search)
  GET    /api/v1/service-master/<id>      — single entry
  POST   /api/v1/service-master           — create (service.manage)
  PATCH  /api/v1/service-master/<id>      — update (service.manage)
  DELETE /api/v1/service-master/<id>      — soft delete, cascades to offerings

Service offerings:
  GET    /api/v1/service-offerings/specialist/<id>  — catalog entries a listing offers
  GET    /api/v1/service-offerings/service/<id>     — listings offering a catalog entry
  POST   /api/v1/service-offerings                  — link (specialist_id, service_master_id)
  DELETE /api/v1/service-offerings/<id>             — unlink
"""

from flask import Blueprint, request

from marketplace.blueprints import paginated_response, request_data
from marketplace.middleware.permission_required import (
    authenticated_user,
    current_user,
    require_auth,
    require_permission,
)
from marketplace.services import catalog_service
from marketplace.utils.errors import api_success

service_master_bp = Blueprint("service_master", __name__, url_prefix="/api/v1/service-master")
service_offerings_bp = Blueprint(
    "service_offerings", __name__, url_prefix="/api/v1/service-offerings"
)


# ── Service master ───────────────────────────────────────────────────────

@service_master_bp.route("", methods=["GET"])
def list_services():
    return paginated_response(catalog_service.list_services(request.args.get("q") or None))


@service_master_bp.route("/<service_id>", methods=["GET"])
def get_service(service_id):
    return api_success(catalog_service.get_service(service_id).to_dict())


@service_master_bp.route("", methods=["POST"])
@require_permission("service.manage")
def create_service():
    service = catalog_service.create_service(request_data())
    return api_success(service.to_dict(), status=201, message="Service created")


@service_master_bp.route("/<service_id>", methods=["PUT", "PATCH"])
@require_permission("service.manage")
def update_service(service_id):
    service = catalog_service.update_service(service_id, request_data())
    return api_success(service.to_dict(), message="Service updated")


@service_master_bp.route("/<service_id>", methods=["DELETE"])
@require_permission("service.manage")
def delete_service(service_id):
    catalog_service.delete_service(service_id)
    return api_success(None, message="Service deleted")


# ── Service offerings ────────────────────────────────────────────────────

@service_offerings_bp.route("/specialist/<specialist_id>", methods=["GET"])
def list_for_specialist(specialist_id):
    offerings = catalog_service.list_for_specialist(current_user(), specialist_id)
    return api_success([o.to_dict() for o in offerings])


@service_offerings_bp.route("/service/<service_id>", methods=["GET"])
def list_for_service(service_id):
    offerings = catalog_service.list_for_service(current_user(), service_id)
    return api_success([o.to_dict() for o in offerings])


@service_offerings_bp.route("", methods=["POST"])
@require_auth
def create_offering():
    data = request_data()
    offering, created = catalog_service.create_offering(
        authenticated_user(), data.get("specialist_id"), data.get("service_master_id")
    )
    return api_success(
        offering.to_dict(),
        status=201 if created else 200,
        message="Service offering created" if created else "Service offering restored",
    )


@service_offerings_bp.route("/<offering_id>", methods=["DELETE"])
@require_auth
def delete_offering(offering_id):
    catalog_service.delete_offering(authenticated_user(), offering_id)
    return api_success(None, message="Service offering deleted")
