"""
Specialist service — listing lifecycle.

Lifecycle:
    create            → is_draft=True, verification_status=pending
    publish/unpublish → toggles is_draft (owner, admin, super_admin)
    verify            → pending → in_review → verified | rejected (super_admin only)

A listing is publicly visible iff it is published AND verified. Hidden
listings are reported as 404 to everyone except their creator and the
privileged read roles, so their existence is not disclosed.

Pricing: ``final_price`` is recomputed by ``lifecycle.compute_final_price``
before every insert and every update touching ``base_price`` or
``platform_fee``. The slug is derived once at creation and never changes.
"""

import logging

from marketplace.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from marketplace.core.records import Certification, parse_records, parse_string_list
from marketplace.models import db
from marketplace.models.catalog import ServiceOffering
from marketplace.models.enums import Role, SpecialistStatus, VerificationStatus, parse_enum
from marketplace.models.media import Media
from marketplace.models.specialist import Specialist
from marketplace.models.user import User
from marketplace.services import platform_fee_service, secretary_service
from marketplace.services.lifecycle import (
    MAX_RATING,
    MIN_RATING,
    apply_rating,
    compute_final_price,
    slugify,
    unique_slug,
)
from marketplace.services.permission_service import (
    MUTATION_BYPASS_ROLES,
    READ_BYPASS_ROLES,
    check_ownership,
    has_permission,
    has_role,
    owns,
    require_permission,
    require_role,
    require_scoped_permission,
)
from marketplace.utils.helpers import commit_or_raise, parse_date_strict, parse_decimal

logger = logging.getLogger(__name__)

MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 365

# Fields copied as-is when present in the payload
_TEXT_FIELDS = ("title", "description", "short_bio")


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def _visible_filter(q):
    return q.filter(
        Specialist.is_draft.is_(False),
        Specialist.verification_status == VerificationStatus.VERIFIED.value,
    )


def list_public(status=None):
    """Published and verified listings, newest first."""
    q = _visible_filter(Specialist.query_active())
    if status:
        q = q.filter(
            Specialist.specialist_status == parse_enum(SpecialistStatus, status, "specialist_status").value
        )
    return q.order_by(Specialist.created_at.desc())


def list_for_actor(actor: User | None, status=None, verification_status=None, is_draft=None):
    """Super-admins see every live listing; everyone else the public set."""
    if actor is None or not has_role(actor, {Role.SUPER_ADMIN}):
        return list_public(status)
    q = Specialist.query_active()
    if status:
        q = q.filter(
            Specialist.specialist_status == parse_enum(SpecialistStatus, status, "specialist_status").value
        )
    if verification_status:
        q = q.filter(
            Specialist.verification_status
            == parse_enum(VerificationStatus, verification_status, "verification_status").value
        )
    if is_draft is not None:
        q = q.filter(Specialist.is_draft.is_(is_draft))
    return q.order_by(Specialist.created_at.desc())


def list_mine(actor: User):
    return (
        Specialist.query_active()
        .filter(Specialist.created_by_id == actor.id)
        .order_by(Specialist.created_at.desc())
    )


def list_assigned(actor: User):
    """Listings assigned to the calling secretary."""
    return (
        Specialist.query_active()
        .filter(Specialist.assigned_secretary_id == actor.id)
        .order_by(Specialist.created_at.desc())
    )


def search(keyword, actor: User | None = None):
    """Keyword match on title / description / short bio of visible listings."""
    keyword = (keyword or "").strip()
    if not keyword:
        raise ValidationError("q is required", details={"q": "required"})
    like = f"%{keyword}%"
    return list_for_actor(actor).filter(
        db.or_(
            Specialist.title.ilike(like),
            Specialist.description.ilike(like),
            Specialist.short_bio.ilike(like),
        )
    )


def stats(actor: User) -> dict:
    """Counts of the caller's listings (all listings for admins)."""
    q = Specialist.query_active()
    if not has_role(actor, MUTATION_BYPASS_ROLES):
        q = q.filter(Specialist.created_by_id == actor.id)
    total = q.count()
    published = q.filter(Specialist.is_draft.is_(False)).count()
    return {"total": total, "published": published, "draft": total - published}


def get_specialist(specialist_id) -> Specialist:
    spec = db.session.get(Specialist, specialist_id) if specialist_id else None
    if spec is None or spec.deleted_at is not None:
        raise NotFoundError(resource="Specialist", resource_id=specialist_id)
    return spec


def can_view(actor: User | None, spec: Specialist) -> bool:
    if spec.is_publicly_visible:
        return True
    if actor is None:
        return False
    return has_role(actor, READ_BYPASS_ROLES) or owns(actor, spec)


def get_visible(actor: User | None, id_or_slug) -> Specialist:
    """Fetch by id or slug, hiding unpublished/unverified listings from
    anyone but their creator and privileged roles."""
    spec = db.session.get(Specialist, id_or_slug) if id_or_slug else None
    if spec is None:
        spec = Specialist.query.filter_by(slug=id_or_slug).first()
    if spec is None or spec.deleted_at is not None or not can_view(actor, spec):
        raise NotFoundError(resource="Specialist", resource_id=id_or_slug)
    return spec


# ═══════════════════════════════════════════════════════════════
# Field handling
# ═══════════════════════════════════════════════════════════════
def _parse_duration(value) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError):
        days = 0
    if isinstance(value, bool) or not MIN_DURATION_DAYS <= days <= MAX_DURATION_DAYS:
        raise ValidationError(
            f"duration_days must be between {MIN_DURATION_DAYS} and {MAX_DURATION_DAYS}",
            details={"duration_days": f"{MIN_DURATION_DAYS}..{MAX_DURATION_DAYS}"},
        )
    return days


def _apply_fields(spec: Specialist, data: dict) -> None:
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(spec, field, data[field].strip() if isinstance(data[field], str) else data[field])
    if not spec.title:
        raise ValidationError("title is required", details={"title": "required"})
    if "duration_days" in data:
        spec.duration_days = _parse_duration(data["duration_days"])
    if "specialist_status" in data:
        spec.specialist_status = parse_enum(
            SpecialistStatus, data["specialist_status"], "specialist_status"
        ).value
    if "experience_started_at" in data:
        spec.experience_started_at = parse_date_strict(
            data["experience_started_at"], "experience_started_at"
        )
    if "additional_offerings" in data:
        spec.additional_offerings = parse_string_list(data["additional_offerings"], "additional_offerings")
    if "expertise_areas" in data:
        spec.expertise_areas = parse_string_list(data["expertise_areas"], "expertise_areas")
    if "certifications" in data:
        spec.certifications = parse_records(Certification, data["certifications"], "certifications")


def _apply_pricing(spec: Specialist, data: dict, creating: bool) -> None:
    touched = creating or "base_price" in data or "platform_fee" in data
    if not touched:
        return
    if "base_price" in data or creating:
        spec.base_price = parse_decimal(data.get("base_price"), "base_price", minimum=0)
    if data.get("platform_fee") is not None:
        spec.platform_fee = parse_decimal(data["platform_fee"], "platform_fee", minimum=0, maximum=100)
    elif creating or "base_price" in data:
        spec.platform_fee = platform_fee_service.fee_for_price(spec.base_price)
    spec.final_price = compute_final_price(spec.base_price, spec.platform_fee)


def _slug_taken(candidate: str) -> bool:
    return db.session.query(Specialist.id).filter(Specialist.slug == candidate).first() is not None


def _assign_secretary(spec: Specialist, secretary_user_id) -> None:
    new_id = secretary_user_id or None
    secretary_service.reassign(spec.assigned_secretary_id, new_id, secretary_service.SPECIALISTS)
    spec.assigned_secretary_id = new_id


# ═══════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════
def create_specialist(actor: User, data: dict) -> Specialist:
    """Create a draft listing owned by ``actor``."""
    require_permission(actor, "specialist.create")
    spec = Specialist(
        created_by_id=actor.id,
        is_draft=True,
        verification_status=VerificationStatus.PENDING.value,
        is_verified=False,
        average_rating=0,
        total_number_of_ratings=0,
        rating_total=0,
        total_projects_completed=0,
        duration_days=MIN_DURATION_DAYS,
        specialist_status=SpecialistStatus.AVAILABLE.value,
        additional_offerings=[],
        expertise_areas=[],
        certifications=[],
    )
    _apply_fields(spec, data)
    _apply_pricing(spec, data, creating=True)

    base_slug = slugify(data.get("slug") or spec.title)
    if not base_slug:
        raise ValidationError("title must contain letters or digits", details={"title": "empty slug"})
    spec.slug = unique_slug(base_slug, _slug_taken)

    if data.get("assigned_secretary_id"):
        _require_assign_permission(actor)
        _assign_secretary(spec, data["assigned_secretary_id"])

    db.session.add(spec)
    commit_or_raise()
    logger.info("Specialist created id=%s slug=%s by=%s", spec.id, spec.slug, actor.id)
    return spec


def update_specialist(actor: User, specialist_id, data: dict) -> Specialist:
    """Update content and pricing. Slug, verification and rating fields are
    not editable here."""
    spec = get_specialist(specialist_id)
    require_scoped_permission(actor, spec, "specialist.update.any", "specialist.update.own")
    _apply_fields(spec, data)
    _apply_pricing(spec, data, creating=False)
    if "assigned_secretary_id" in data:
        _require_assign_permission(actor)
        _assign_secretary(spec, data["assigned_secretary_id"])
    commit_or_raise()
    logger.info("Specialist updated id=%s by=%s", spec.id, actor.id)
    return spec


def delete_specialist(actor: User, specialist_id) -> None:
    """Soft-delete the listing together with its media and offerings."""
    spec = get_specialist(specialist_id)
    require_scoped_permission(actor, spec, "specialist.delete.any", "specialist.delete.own")
    spec.soft_delete()
    for media in spec.media.filter(Media.deleted_at.is_(None)):
        media.soft_delete()
    for offering in spec.offerings.filter(ServiceOffering.deleted_at.is_(None)):
        offering.soft_delete()
    if spec.assigned_secretary_id:
        secretary_service.adjust_workload(spec.assigned_secretary_id, specialists_delta=-1)
    commit_or_raise()
    logger.info("Specialist soft-deleted id=%s by=%s", spec.id, actor.id)


def _set_draft(actor: User, specialist_id, is_draft: bool) -> Specialist:
    spec = get_specialist(specialist_id)
    require_permission(actor, "specialist.publish")
    check_ownership(actor, spec, bypass_roles=MUTATION_BYPASS_ROLES)
    spec.is_draft = is_draft
    commit_or_raise()
    logger.info("Specialist id=%s %s by=%s", spec.id, "unpublished" if is_draft else "published", actor.id)
    return spec


def publish(actor: User, specialist_id) -> Specialist:
    return _set_draft(actor, specialist_id, False)


def unpublish(actor: User, specialist_id) -> Specialist:
    return _set_draft(actor, specialist_id, True)


def verify(actor: User, specialist_id, status) -> Specialist:
    """Set the verification status (super_admin only); ``is_verified``
    follows the status."""
    require_role(actor, {Role.SUPER_ADMIN})
    target = parse_enum(VerificationStatus, status, "verification_status")
    spec = get_specialist(specialist_id)
    spec.verification_status = target.value
    spec.is_verified = target is VerificationStatus.VERIFIED
    commit_or_raise()
    logger.info("Specialist id=%s verification_status=%s by=%s", spec.id, target.value, actor.id)
    return spec


def rate(actor: User, specialist_id, rating) -> Specialist:
    """Fold one 1–5 rating into the listing's average under a row lock."""
    if isinstance(rating, bool):
        rating = None
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        rating = None
    if rating is None or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"rating must be an integer between {MIN_RATING} and {MAX_RATING}",
            details={"rating": f"{MIN_RATING}..{MAX_RATING}"},
        )

    spec = (
        Specialist.query.filter(Specialist.id == specialist_id, Specialist.deleted_at.is_(None))
        .with_for_update()
        .populate_existing()
        .first()
    )
    if spec is None or not can_view(actor, spec):
        raise NotFoundError(resource="Specialist", resource_id=specialist_id)
    if owns(actor, spec):
        raise AuthorizationError("You cannot rate your own listing")

    spec.rating_total, spec.total_number_of_ratings, spec.average_rating = apply_rating(
        spec.rating_total, spec.total_number_of_ratings, rating
    )
    commit_or_raise()
    logger.info("Specialist id=%s rated %s (count=%s)", spec.id, rating, spec.total_number_of_ratings)
    return spec


def _require_assign_permission(actor: User) -> None:
    if not (has_permission(actor, "specialist.update.any")
            or has_permission(actor, "secretary.manage.specialists")):
        raise AuthorizationError(
            "Insufficient permissions",
            details={"required_any": ["specialist.update.any", "secretary.manage.specialists"]},
        )


def assign_secretary(actor: User, specialist_id, secretary_user_id) -> Specialist:
    _require_assign_permission(actor)
    spec = get_specialist(specialist_id)
    _assign_secretary(spec, secretary_user_id)
    commit_or_raise()
    logger.info("Specialist id=%s assigned to secretary user=%s by=%s",
                spec.id, spec.assigned_secretary_id, actor.id)
    return spec
