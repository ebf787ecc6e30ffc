"""
Platform fee API Blueprint

Endpoints:
  GET    /api/v1/platform-fees                   — tiers ordered by min_value
  GET    /api/v1/platform-fees/calculate?price=  — fee / final price preview
  POST   /api/v1/platform-fees                   — create tier (platform_fee.manage)
  PUT    /api/v1/platform-fees/<id>              — update tier (platform_fee.manage)
  DELETE /api/v1/platform-fees/<id>              — delete tier (platform_fee.manage)
"""

from flask import Blueprint, request

from marketplace.blueprints import request_data
from marketplace.core.exceptions import ValidationError
from marketplace.middleware.permission_required import require_permission
from marketplace.services import platform_fee_service
from marketplace.utils.errors import api_success

platform_fees_bp = Blueprint("platform_fees", __name__, url_prefix="/api/v1/platform-fees")


@platform_fees_bp.route("", methods=["GET"])
def list_tiers():
    return api_success([t.to_dict() for t in platform_fee_service.list_tiers()])


@platform_fees_bp.route("/calculate", methods=["GET"])
def calculate():
    price = request.args.get("price")
    if price is None or price == "":
        raise ValidationError("price is required", details={"price": "required"})
    return api_success(platform_fee_service.calculate(price))


@platform_fees_bp.route("", methods=["POST"])
@require_permission("platform_fee.manage")
def create_tier():
    tier = platform_fee_service.create_tier(request_data())
    return api_success(tier.to_dict(), status=201, message="Platform fee tier created")


@platform_fees_bp.route("/<tier_id>", methods=["PUT", "PATCH"])
@require_permission("platform_fee.manage")
def update_tier(tier_id):
    tier = platform_fee_service.update_tier(tier_id, request_data())
    return api_success(tier.to_dict(), message="Platform fee tier updated")


@platform_fees_bp.route("/<tier_id>", methods=["DELETE"])
@require_permission("platform_fee.manage")
def delete_tier(tier_id):
    platform_fee_service.delete_tier(tier_id)
    return api_success(None, message="Platform fee tier deleted")
