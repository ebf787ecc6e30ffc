"""
Secretary service — profile lifecycle and workload accounting.

A secretary profile is created together with its User in one transaction.
Avatar and banner images are uploaded first; if the transaction fails the
uploads are deleted again (cleanup failures are logged, never raised).

Workload counters change only through ``adjust_workload``, which locks the
profile row, clamps the counters at zero and recomputes both acceptance
flags from the new workload.
"""

import logging
from datetime import datetime, timezone

from marketplace.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from marketplace.core.records import Certification, ContactInformation, parse_record, parse_records, parse_string_list
from marketplace.models import db
from marketplace.models.enums import Role, SecretaryStatus, SecretaryType, UserStatus, parse_enum
from marketplace.models.secretary import Secretary
from marketplace.models.user import User
from marketplace.services import user_service
from marketplace.services.lifecycle import accepting_new_work, adjust_counter
from marketplace.services.permission_service import has_permission
from marketplace.services.storage_service import (
    IMAGE_MIME_TYPES,
    discard_uploads,
    get_storage,
    read_upload,
)
from marketplace.utils.helpers import commit_or_raise, parse_date_strict, parse_decimal

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "secretaries/avatars"
BANNER_FOLDER = "secretaries/banners"

COMPANIES = "companies"
SPECIALISTS = "specialists"

# Plain profile fields settable on create/update
_PROFILE_FIELDS = (
    "qualification", "company_name", "experience", "availability_schedule",
)


# ═══════════════════════════════════════════════════════════════
# Lookups
# ═══════════════════════════════════════════════════════════════
def get_secretary(secretary_id) -> Secretary:
    sec = db.session.get(Secretary, secretary_id) if secretary_id else None
    if sec is None or sec.deleted_at is not None:
        raise NotFoundError(resource="Secretary", resource_id=secretary_id)
    return sec


def find_by_user_id(user_id, lock=False) -> Secretary | None:
    if not user_id:
        return None
    q = Secretary.query_active().filter(Secretary.user_id == user_id)
    if lock:
        q = q.with_for_update()
    return q.first()


def list_secretaries(status=None, is_verified=None, accepting=None):
    q = Secretary.query_active()
    if status:
        q = q.filter(Secretary.status == parse_enum(SecretaryStatus, status, "status").value)
    if is_verified is not None:
        q = q.filter(Secretary.is_verified.is_(is_verified))
    if accepting == COMPANIES:
        q = q.filter(Secretary.is_accepting_new_companies.is_(True))
    elif accepting == SPECIALISTS:
        q = q.filter(Secretary.is_accepting_new_specialists.is_(True))
    return q.order_by(Secretary.created_at.desc())


# ═══════════════════════════════════════════════════════════════
# Create / update / delete
# ═══════════════════════════════════════════════════════════════
def _apply_profile(sec: Secretary, data: dict) -> None:
    for field in _PROFILE_FIELDS:
        if field in data:
            setattr(sec, field, data[field])
    if "secretary_type" in data:
        sec.secretary_type = parse_enum(SecretaryType, data["secretary_type"], "secretary_type").value
    if "status" in data:
        sec.status = parse_enum(SecretaryStatus, data["status"], "status").value
    if "registration_date" in data:
        sec.registration_date = parse_date_strict(data["registration_date"], "registration_date")
    if "expiry_date" in data:
        sec.expiry_date = parse_date_strict(data["expiry_date"], "expiry_date")
    if sec.registration_date and sec.expiry_date and sec.expiry_date < sec.registration_date:
        raise ValidationError("expiry_date must be after registration_date",
                              details={"expiry_date": "before registration_date"})
    if "areas_of_expertise" in data:
        sec.areas_of_expertise = parse_string_list(data["areas_of_expertise"], "areas_of_expertise")
    if "certifications" in data:
        sec.certifications = parse_records(Certification, data["certifications"], "certifications")
    if "contact_information" in data:
        sec.contact_information = parse_record(
            ContactInformation, data["contact_information"], "contact_information"
        )
    for money in ("hourly_rate", "monthly_rate"):
        if money in data:
            value = data[money]
            setattr(sec, money, parse_decimal(value, money, minimum=0) if value is not None else None)
    if "satisfaction_rate" in data and data["satisfaction_rate"] is not None:
        sec.satisfaction_rate = parse_decimal(
            data["satisfaction_rate"], "satisfaction_rate", minimum=0, maximum=100
        )
    if "years_of_experience" in data and data["years_of_experience"] is not None:
        try:
            years = int(data["years_of_experience"])
        except (TypeError, ValueError):
            years = -1
        if years < 0:
            raise ValidationError("years_of_experience must be a non-negative integer",
                                  details={"years_of_experience": "invalid"})
        sec.years_of_experience = years
    if "manager_id" in data:
        if data["manager_id"]:
            user_service.get_user(data["manager_id"])
        sec.manager_id = data["manager_id"] or None


def _upload_images(avatar, banner) -> dict:
    uploaded = {}
    storage = get_storage()
    try:
        for key, file_storage, folder in (
            ("avatar", avatar, AVATAR_FOLDER),
            ("banner", banner, BANNER_FOLDER),
        ):
            if file_storage is None or not file_storage.filename:
                continue
            file_bytes, filename, mime_type = read_upload(file_storage, IMAGE_MIME_TYPES, key)
            uploaded[key] = storage.upload(file_bytes, folder, filename, mime_type)
    except Exception:
        discard_uploads([u["public_id"] for u in uploaded.values()])
        raise
    return uploaded


def create_with_user(actor: User, data: dict, avatar=None, banner=None) -> Secretary:
    """Create a secretary User and its profile atomically.

    Raises:
        ValidationError / ConflictError: Invalid input or duplicate
            email / registration number (uploads are rolled back).
        UploadError: Storage failure.
    """
    registration_number = (data.get("registration_number") or "").strip()
    if not registration_number:
        raise ValidationError("registration_number is required",
                              details={"registration_number": "required"})
    if Secretary.query.filter_by(registration_number=registration_number).first():
        raise ConflictError(resource="Secretary", field="registration_number",
                            value=registration_number)

    uploaded = _upload_images(avatar, banner)
    try:
        user = user_service.build_user(
            {**data, "registration_number": registration_number},
            role=Role.SECRETARY,
            status=UserStatus.ACTIVE,
        )
        db.session.flush()

        sec = Secretary(
            user_id=user.id,
            registration_number=registration_number,
            total_companies_managed=0,
            total_specialists_managed=0,
            is_accepting_new_companies=True,
            is_accepting_new_specialists=True,
            is_verified=False,
        )
        _apply_profile(sec, data)
        if "avatar" in uploaded:
            sec.avatar = uploaded["avatar"]["url"]
            sec.avatar_public_id = uploaded["avatar"]["public_id"]
            user.profile_image = sec.avatar
        if "banner" in uploaded:
            sec.banner = uploaded["banner"]["url"]
            sec.banner_public_id = uploaded["banner"]["public_id"]
        db.session.add(sec)
        commit_or_raise()
    except Exception:
        db.session.rollback()
        discard_uploads([u["public_id"] for u in uploaded.values()])
        raise

    logger.info("Secretary created id=%s user=%s by=%s", sec.id, user.id, actor.id)
    return sec


def _can_edit(actor: User, sec: Secretary) -> bool:
    return sec.user_id == actor.id or has_permission(actor, "secretary.update")


def update_secretary(actor: User, secretary_id, data: dict, avatar=None, banner=None) -> Secretary:
    """Update profile fields. Counters, acceptance flags and verification
    are not settable here."""
    sec = get_secretary(secretary_id)
    if not _can_edit(actor, sec):
        raise AuthorizationError("You do not have access to this secretary profile")

    if "registration_number" in data and data["registration_number"] != sec.registration_number:
        clash = Secretary.query.filter(
            Secretary.registration_number == data["registration_number"],
            Secretary.id != sec.id,
        ).first()
        if clash:
            raise ConflictError(resource="Secretary", field="registration_number",
                                value=data["registration_number"])

    # Nothing on ``sec`` changes until the uploads have succeeded
    uploaded = _upload_images(avatar, banner)
    replaced = []
    try:
        if "registration_number" in data:
            sec.registration_number = data["registration_number"]
        _apply_profile(sec, data)
        if "avatar" in uploaded:
            replaced.append(sec.avatar_public_id)
            sec.avatar = uploaded["avatar"]["url"]
            sec.avatar_public_id = uploaded["avatar"]["public_id"]
        if "banner" in uploaded:
            replaced.append(sec.banner_public_id)
            sec.banner = uploaded["banner"]["url"]
            sec.banner_public_id = uploaded["banner"]["public_id"]
        commit_or_raise()
    except Exception:
        db.session.rollback()
        discard_uploads([u["public_id"] for u in uploaded.values()])
        raise

    # Old images are only removed once the new ones are committed
    discard_uploads(replaced)
    logger.info("Secretary updated id=%s by=%s", sec.id, actor.id)
    return sec


def verify_secretary(actor: User, secretary_id, is_verified=True, notes=None) -> Secretary:
    sec = get_secretary(secretary_id)
    sec.is_verified = bool(is_verified)
    sec.verification_notes = notes
    sec.verified_at = datetime.now(timezone.utc) if sec.is_verified else None
    sec.verified_by_id = actor.id if sec.is_verified else None
    commit_or_raise()
    logger.info("Secretary id=%s verification set to %s by=%s", sec.id, sec.is_verified, actor.id)
    return sec


def delete_secretary(actor: User, secretary_id) -> None:
    sec = get_secretary(secretary_id)
    sec.soft_delete()
    sec.status = SecretaryStatus.INACTIVE.value
    commit_or_raise()
    logger.info("Secretary soft-deleted id=%s by=%s", sec.id, actor.id)


def stats(secretary_id) -> dict:
    sec = get_secretary(secretary_id)
    return {
        "id": sec.id,
        "total_companies_managed": sec.total_companies_managed,
        "total_specialists_managed": sec.total_specialists_managed,
        "workload": float(sec.workload()),
        "is_overloaded": sec.is_overloaded(),
        "is_available": sec.is_available(),
        "is_accepting_new_companies": sec.is_accepting_new_companies,
        "is_accepting_new_specialists": sec.is_accepting_new_specialists,
    }


# ═══════════════════════════════════════════════════════════════
# Workload accounting
# ═══════════════════════════════════════════════════════════════
def recompute_flags(sec: Secretary) -> None:
    accepting = accepting_new_work(sec.workload())
    sec.is_accepting_new_companies = accepting
    sec.is_accepting_new_specialists = accepting


def adjust_workload(user_id, companies_delta=0, specialists_delta=0) -> Secretary | None:
    """Lock the profile of ``user_id`` and move its counters (no commit).

    Returns None when the user has no secretary profile.
    """
    sec = find_by_user_id(user_id, lock=True)
    if sec is None:
        return None
    sec.total_companies_managed = adjust_counter(sec.total_companies_managed, companies_delta)
    sec.total_specialists_managed = adjust_counter(sec.total_specialists_managed, specialists_delta)
    recompute_flags(sec)
    logger.info(
        "Secretary id=%s workload now companies=%s specialists=%s",
        sec.id, sec.total_companies_managed, sec.total_specialists_managed,
    )
    return sec


def require_assignable(user_id, kind: str) -> Secretary:
    """Return the secretary profile of ``user_id`` if it can take more ``kind``.

    Raises:
        NotFoundError: No such user / secretary profile.
        ValidationError: Secretary unavailable or at capacity.
    """
    sec = find_by_user_id(user_id)
    if sec is None:
        raise NotFoundError(resource="Secretary", resource_id=user_id)
    can_take = (
        sec.can_take_more_companies() if kind == COMPANIES else sec.can_take_more_specialists()
    )
    if not can_take:
        raise ValidationError(
            f"Secretary cannot take more {kind}",
            details={"assigned_secretary_id": "unavailable or at capacity"},
        )
    return sec


def reassign(old_user_id, new_user_id, kind: str) -> None:
    """Move one unit of ``kind`` workload from the old to the new secretary."""
    if old_user_id == new_user_id:
        return
    delta = {"companies_delta": 1} if kind == COMPANIES else {"specialists_delta": 1}
    if new_user_id:
        require_assignable(new_user_id, kind)
        adjust_workload(new_user_id, **delta)
    if old_user_id:
        adjust_workload(old_user_id, **{k: -v for k, v in delta.items()})
