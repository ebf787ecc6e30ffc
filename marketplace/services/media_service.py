"""
Media service — files attached to specialist listings.

Upload flow: validate → upload to object storage → insert row → commit.
If the insert fails the stored object is deleted again. Deleting media is
a soft delete; the stored object is kept so the row can be restored.
"""

import logging

from flask import current_app

from marketplace.core.exceptions import UploadError, ValidationError
from marketplace.models import db
from marketplace.models.enums import MediaType, MimeType, parse_enum
from marketplace.models.media import Media
from marketplace.models.user import User
from marketplace.services import specialist_service
from marketplace.services.permission_service import (
    MUTATION_BYPASS_ROLES,
    check_ownership,
    require_permission,
)
from marketplace.services.storage_service import discard_uploads, get_storage, read_upload
from marketplace.utils.helpers import commit_or_raise, get_active_or_404

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset(m.value for m in MimeType)
MEDIA_FOLDER = "specialists"


def _parse_order(value) -> int:
    if value in (None, ""):
        return 0
    try:
        order = int(value)
    except (TypeError, ValueError):
        order = -1
    if order < 0:
        raise ValidationError("display_order must be a non-negative integer",
                              details={"display_order": "invalid"})
    return order


def list_for_specialist(actor: User | None, specialist_id):
    """Live media of a visible listing, by ascending display order."""
    spec = specialist_service.get_visible(actor, specialist_id)
    return (
        Media.query_active()
        .filter(Media.specialist_id == spec.id)
        .order_by(Media.display_order.asc(), Media.created_at.asc())
        .all()
    )


def get_media(actor: User | None, media_id) -> Media:
    media = get_active_or_404(Media, media_id)
    specialist_service.get_visible(actor, media.specialist_id)
    return media


def upload_media(actor: User, specialist_id, file_storage, data: dict) -> Media:
    """Attach a new file to a listing the caller may modify."""
    require_permission(actor, "media.upload")
    spec = specialist_service.get_specialist(specialist_id)
    check_ownership(actor, spec, bypass_roles=MUTATION_BYPASS_ROLES)

    media_type = parse_enum(MediaType, data.get("media_type") or MediaType.GALLERY.value, "media_type")
    display_order = _parse_order(data.get("display_order"))
    file_bytes, filename, mime_type = read_upload(file_storage, ALLOWED_MIME_TYPES, "file")
    max_bytes = current_app.config.get("MAX_CONTENT_LENGTH")
    if max_bytes and len(file_bytes) > max_bytes:
        raise UploadError("File too large", status_code=400, details={"file": f"max {max_bytes} bytes"})

    stored = get_storage().upload(file_bytes, f"{MEDIA_FOLDER}/{spec.id}", filename, mime_type)
    try:
        media = Media(
            specialist_id=spec.id,
            url=stored["url"],
            public_id=stored["public_id"],
            file_name=filename,
            file_size=len(file_bytes),
            mime_type=mime_type,
            media_type=media_type.value,
            display_order=display_order,
            uploaded_by_id=actor.id,
        )
        db.session.add(media)
        commit_or_raise()
    except Exception:
        db.session.rollback()
        discard_uploads([stored["public_id"]])
        raise

    logger.info("Media uploaded id=%s specialist=%s by=%s", media.id, spec.id, actor.id)
    return media


def update_media(actor: User, media_id, data: dict) -> Media:
    """Change display order / media type."""
    require_permission(actor, "media.upload")
    media = get_active_or_404(Media, media_id)
    check_ownership(actor, media.specialist, bypass_roles=MUTATION_BYPASS_ROLES)
    if "display_order" in data:
        media.display_order = _parse_order(data["display_order"])
    if "media_type" in data:
        media.media_type = parse_enum(MediaType, data["media_type"], "media_type").value
    commit_or_raise()
    logger.info("Media updated id=%s by=%s", media.id, actor.id)
    return media


def delete_media(actor: User, media_id) -> None:
    require_permission(actor, "media.delete")
    media = get_active_or_404(Media, media_id)
    check_ownership(actor, media.specialist, bypass_roles=MUTATION_BYPASS_ROLES)
    media.soft_delete()
    commit_or_raise()
    logger.info("Media soft-deleted id=%s by=%s", media.id, actor.id)
