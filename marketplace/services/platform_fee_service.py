"""
Platform fee tiers — CRUD plus the price → fee lookup used when pricing
specialist listings.

Tiers are configuration rows (hard-deleted). Their ``[min, max]`` ranges
must not overlap; every write re-checks the remaining tiers.
"""

import logging
from decimal import Decimal

from flask import current_app

from marketplace.core.exceptions import ConflictError, NotFoundError, ValidationError
from marketplace.models import db
from marketplace.models.catalog import PlatformFee
from marketplace.models.enums import FeeTier, parse_enum
from marketplace.services.lifecycle import (
    DEFAULT_FEE_PERCENTAGE,
    compute_final_price,
    ranges_overlap,
    resolve_fee_percentage,
)
from marketplace.utils.helpers import commit_or_raise, parse_decimal

logger = logging.getLogger(__name__)


def _default_fee() -> Decimal:
    return Decimal(str(current_app.config.get("DEFAULT_PLATFORM_FEE", DEFAULT_FEE_PERCENTAGE)))


def list_tiers():
    return PlatformFee.query.order_by(PlatformFee.min_value.asc()).all()


def get_tier(tier_id) -> PlatformFee:
    tier = db.session.get(PlatformFee, tier_id) if tier_id else None
    if tier is None:
        raise NotFoundError(resource="PlatformFee", resource_id=tier_id)
    return tier


def fee_for_price(price) -> Decimal:
    """Fee percentage for ``price``; default fee when no tier covers it."""
    return resolve_fee_percentage(list_tiers(), price, default=_default_fee())


def calculate(price) -> dict:
    """Preview the fee and final price for a base price."""
    base = parse_decimal(price, "price", minimum=0)
    fee = fee_for_price(base)
    return {
        "base_price": float(base),
        "platform_fee_percentage": float(fee),
        "final_price": float(compute_final_price(base, fee)),
    }


def _validate_range(min_value, max_value, percentage, exclude_id=None):
    if min_value > max_value:
        raise ValidationError(
            "min_value must not exceed max_value",
            details={"min_value": "greater than max_value"},
        )
    if percentage > 100:
        raise ValidationError(
            "platform_fee_percentage must be <= 100",
            details={"platform_fee_percentage": "max 100"},
        )
    for other in list_tiers():
        if other.id == exclude_id:
            continue
        if ranges_overlap(min_value, max_value, other.min_value, other.max_value):
            raise ConflictError(resource="PlatformFee", field="range", value=other.tier_name)


def create_tier(data: dict) -> PlatformFee:
    tier_name = parse_enum(FeeTier, data.get("tier_name"), "tier_name").value
    if PlatformFee.query.filter_by(tier_name=tier_name).first():
        raise ConflictError(resource="PlatformFee", field="tier_name", value=tier_name)
    min_value = parse_decimal(data.get("min_value"), "min_value", minimum=0)
    max_value = parse_decimal(data.get("max_value"), "max_value", minimum=0)
    percentage = parse_decimal(data.get("platform_fee_percentage"), "platform_fee_percentage", minimum=0)
    _validate_range(min_value, max_value, percentage)

    tier = PlatformFee(
        tier_name=tier_name,
        min_value=min_value,
        max_value=max_value,
        platform_fee_percentage=percentage,
    )
    db.session.add(tier)
    commit_or_raise()
    logger.info("PlatformFee tier created %s [%s, %s] @ %s%%", tier_name, min_value, max_value, percentage)
    return tier


def update_tier(tier_id, data: dict) -> PlatformFee:
    tier = get_tier(tier_id)
    min_value = (
        parse_decimal(data["min_value"], "min_value", minimum=0)
        if "min_value" in data else Decimal(str(tier.min_value))
    )
    max_value = (
        parse_decimal(data["max_value"], "max_value", minimum=0)
        if "max_value" in data else Decimal(str(tier.max_value))
    )
    percentage = (
        parse_decimal(data["platform_fee_percentage"], "platform_fee_percentage", minimum=0)
        if "platform_fee_percentage" in data else Decimal(str(tier.platform_fee_percentage))
    )
    if "tier_name" in data:
        tier_name = parse_enum(FeeTier, data["tier_name"], "tier_name").value
        clash = PlatformFee.query.filter(
            PlatformFee.tier_name == tier_name, PlatformFee.id != tier.id
        ).first()
        if clash:
            raise ConflictError(resource="PlatformFee", field="tier_name", value=tier_name)
        tier.tier_name = tier_name
    _validate_range(min_value, max_value, percentage, exclude_id=tier.id)

    tier.min_value = min_value
    tier.max_value = max_value
    tier.platform_fee_percentage = percentage
    commit_or_raise()
    logger.info("PlatformFee tier updated id=%s", tier.id)
    return tier


def delete_tier(tier_id) -> None:
    tier = get_tier(tier_id)
    db.session.delete(tier)
    commit_or_raise()
    logger.info("PlatformFee tier deleted id=%s", tier_id)
