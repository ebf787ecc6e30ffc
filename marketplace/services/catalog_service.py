"""
Service catalog — the master list of service titles and the offerings that
link specialists to them.

Re-creating an offering that was soft-deleted restores the existing row
instead of inserting a duplicate (the pair is unique).
"""

import logging

from marketplace.core.exceptions import ConflictError, ValidationError
from marketplace.models import db
from marketplace.models.catalog import ServiceMaster, ServiceOffering
from marketplace.models.user import User
from marketplace.services import specialist_service
from marketplace.services.permission_service import MUTATION_BYPASS_ROLES, check_ownership
from marketplace.utils.helpers import commit_or_raise, get_active_or_404

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Service master
# ═══════════════════════════════════════════════════════════════
def list_services(search=None):
    q = ServiceMaster.query_active()
    if search:
        q = q.filter(ServiceMaster.title.ilike(f"%{search.strip()}%"))
    return q.order_by(ServiceMaster.title.asc())


def get_service(service_id) -> ServiceMaster:
    return get_active_or_404(ServiceMaster, service_id, "ServiceMaster")


def _clean_title(value) -> str:
    title = (value or "").strip() if isinstance(value, str) else ""
    if not title:
        raise ValidationError("title is required", details={"title": "required"})
    return title


def _ensure_title_free(title, exclude_id=None):
    q = ServiceMaster.query.filter(ServiceMaster.title == title)
    if exclude_id:
        q = q.filter(ServiceMaster.id != exclude_id)
    if q.first():
        raise ConflictError(resource="ServiceMaster", field="title", value=title)


def create_service(data: dict) -> ServiceMaster:
    title = _clean_title(data.get("title"))
    _ensure_title_free(title)
    service = ServiceMaster(
        title=title,
        description=data.get("description"),
        s3_key=data.get("s3_key"),
        bucket_name=data.get("bucket_name"),
    )
    db.session.add(service)
    commit_or_raise()
    logger.info("ServiceMaster created id=%s title=%s", service.id, title)
    return service


def update_service(service_id, data: dict) -> ServiceMaster:
    service = get_service(service_id)
    if "title" in data:
        title = _clean_title(data["title"])
        _ensure_title_free(title, exclude_id=service.id)
        service.title = title
    for field in ("description", "s3_key", "bucket_name"):
        if field in data:
            setattr(service, field, data[field])
    commit_or_raise()
    logger.info("ServiceMaster updated id=%s", service.id)
    return service


def delete_service(service_id) -> None:
    service = get_service(service_id)
    service.soft_delete()
    for offering in service.offerings.filter(ServiceOffering.deleted_at.is_(None)):
        offering.soft_delete()
    commit_or_raise()
    logger.info("ServiceMaster soft-deleted id=%s", service.id)


# ═══════════════════════════════════════════════════════════════
# Service offerings
# ═══════════════════════════════════════════════════════════════
def list_for_specialist(actor: User | None, specialist_id):
    spec = specialist_service.get_visible(actor, specialist_id)
    return (
        ServiceOffering.query_active()
        .filter(ServiceOffering.specialist_id == spec.id)
        .order_by(ServiceOffering.created_at.asc())
        .all()
    )


def list_for_service(actor: User | None, service_id):
    """Offerings of a catalog entry whose listings the caller may see."""
    service = get_service(service_id)
    offerings = (
        ServiceOffering.query_active()
        .filter(ServiceOffering.service_master_id == service.id)
        .order_by(ServiceOffering.created_at.asc())
        .all()
    )
    return [
        o for o in offerings
        if o.specialist.deleted_at is None and specialist_service.can_view(actor, o.specialist)
    ]


def create_offering(actor: User, specialist_id, service_id) -> tuple[ServiceOffering, bool]:
    """Link a listing to a catalog entry.

    Returns ``(offering, created)``; ``created`` is False when an existing
    soft-deleted link was restored.

    Raises:
        ConflictError: The pair is already linked.
    """
    spec = specialist_service.get_specialist(specialist_id)
    check_ownership(actor, spec, bypass_roles=MUTATION_BYPASS_ROLES)
    service = get_service(service_id)

    existing = ServiceOffering.query.filter_by(
        specialist_id=spec.id, service_master_id=service.id
    ).first()
    if existing is not None:
        if existing.deleted_at is None:
            raise ConflictError(resource="ServiceOffering", field="service_master_id", value=service.id)
        existing.restore()
        commit_or_raise()
        logger.info("ServiceOffering restored id=%s by=%s", existing.id, actor.id)
        return existing, False

    offering = ServiceOffering(specialist_id=spec.id, service_master_id=service.id)
    db.session.add(offering)
    commit_or_raise()
    logger.info("ServiceOffering created id=%s specialist=%s service=%s by=%s",
                offering.id, spec.id, service.id, actor.id)
    return offering, True


def delete_offering(actor: User, offering_id) -> None:
    offering = get_active_or_404(ServiceOffering, offering_id, "ServiceOffering")
    check_ownership(actor, offering.specialist, bypass_roles=MUTATION_BYPASS_ROLES)
    offering.soft_delete()
    commit_or_raise()
    logger.info("ServiceOffering soft-deleted id=%s by=%s", offering.id, actor.id)
