"""
Companies API Blueprint

Endpoints:
  GET    /api/v1/companies                      — companies the caller may read
  GET    /api/v1/companies/<id>                 — single company
  GET    /api/v1/companies/<id>/compliance      — compliance summary
  POST   /api/v1/companies                      — register a company
  PUT    /api/v1/companies/<id>                 — update
  PATCH  /api/v1/companies/<id>/secretary       — assign / unassign a secretary
  POST   /api/v1/companies/<id>/directors       — append a director
  POST   /api/v1/companies/<id>/shareholders    — append a shareholder
  DELETE /api/v1/companies/<id>                 — soft delete
"""

from flask import Blueprint, request

from marketplace.blueprints import paginated_response, request_data
from marketplace.middleware.permission_required import (
    authenticated_user,
    require_auth,
    require_permission,
)
from marketplace.services import company_service
from marketplace.utils.errors import api_success

companies_bp = Blueprint("companies", __name__, url_prefix="/api/v1/companies")


@companies_bp.route("", methods=["GET"])
@require_auth
def list_companies():
    q = company_service.list_companies(
        authenticated_user(),
        status=request.args.get("status") or None,
        entity_type=request.args.get("entity_type") or None,
        search=request.args.get("q") or None,
    )
    return paginated_response(q)


@companies_bp.route("/<company_id>", methods=["GET"])
@require_auth
def get_company(company_id):
    return api_success(company_service.get_company(authenticated_user(), company_id).to_dict())


@companies_bp.route("/<company_id>/compliance", methods=["GET"])
@require_auth
def compliance(company_id):
    return api_success(company_service.compliance(authenticated_user(), company_id))


@companies_bp.route("", methods=["POST"])
@require_permission("company.create")
def create_company():
    company = company_service.create_company(authenticated_user(), request_data())
    return api_success(company.to_dict(), status=201, message="Company created")


@companies_bp.route("/<company_id>", methods=["PUT", "PATCH"])
@require_auth
def update_company(company_id):
    company = company_service.update_company(authenticated_user(), company_id, request_data())
    return api_success(company.to_dict(), message="Company updated")


@companies_bp.route("/<company_id>/secretary", methods=["PATCH"])
@require_auth
def assign_secretary(company_id):
    data = request_data()
    company = company_service.assign_secretary(
        authenticated_user(), company_id, data.get("secretary_id")
    )
    return api_success(company.to_dict(), message="Secretary assignment updated")


@companies_bp.route("/<company_id>/directors", methods=["POST"])
@require_auth
def add_director(company_id):
    company = company_service.add_director(authenticated_user(), company_id, request_data())
    return api_success(company.to_dict(), status=201, message="Director added")


@companies_bp.route("/<company_id>/shareholders", methods=["POST"])
@require_auth
def add_shareholder(company_id):
    company = company_service.add_shareholder(authenticated_user(), company_id, request_data())
    return api_success(company.to_dict(), status=201, message="Shareholder added")


@companies_bp.route("/<company_id>", methods=["DELETE"])
@require_auth
def delete_company(company_id):
    company_service.delete_company(authenticated_user(), company_id)
    return api_success(None, message="Company deleted")
