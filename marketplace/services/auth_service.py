"""
Auth service — registration, login, token refresh and password lifecycle.

Password-reset tokens are random, single-use and stored only as SHA-256
digests with an absolute expiry. ``request_password_reset`` behaves the
same for known and unknown addresses so callers cannot probe accounts.
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from marketplace.core.exceptions import (
    AuthenticationError,
    InvalidOrExpiredTokenError,
    ValidationError,
)
from marketplace.models import db
from marketplace.models.enums import Role, UserStatus, parse_enum
from marketplace.models.user import User
from marketplace.services import jwt_service, user_service
from marketplace.services.storage_service import (
    IMAGE_MIME_TYPES,
    discard_uploads,
    get_storage,
    read_upload,
)
from marketplace.utils.crypto import (
    generate_opaque_token,
    hash_password,
    hash_token,
    verify_password,
)
from marketplace.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

# Roles a visitor may pick for themselves; everything else is assigned by staff
SELF_REGISTRATION_ROLES = frozenset({Role.SPECIALIST, Role.CLIENT, Role.VIEWER})

PROFILE_IMAGE_FOLDER = "profile-images"


def _utcnow():
    return datetime.now(timezone.utc)


def _as_utc(value):
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════
# Registration & Login
# ═══════════════════════════════════════════════════════════════
def register(data: dict, profile_image=None) -> tuple[User, dict]:
    """Create an active account and return ``(user, tokens)``.

    The optional profile image is uploaded before the insert; if the insert
    fails the uploaded object is deleted again.
    """
    role = parse_enum(Role, data.get("role") or Role.VIEWER.value, "role")
    if role not in SELF_REGISTRATION_ROLES:
        raise ValidationError(
            "Role cannot be self-assigned",
            details={"role": f"must be one of {', '.join(sorted(r.value for r in SELF_REGISTRATION_ROLES))}"},
        )

    user = user_service.build_user(data, role=role, status=UserStatus.ACTIVE)

    uploaded = None
    if profile_image is not None and profile_image.filename:
        file_bytes, filename, mime_type = read_upload(profile_image, IMAGE_MIME_TYPES, "profile_image")
        uploaded = get_storage().upload(file_bytes, PROFILE_IMAGE_FOLDER, filename, mime_type)
        user.profile_image = uploaded["url"]
        user.profile_image_public_id = uploaded["public_id"]

    try:
        commit_or_raise()
    except Exception:
        if uploaded:
            discard_uploads([uploaded["public_id"]])
        raise

    logger.info("User registered id=%s role=%s", user.id, user.role)
    return user, jwt_service.generate_token_pair(user)


def login(email, password) -> tuple[User, dict]:
    """Verify credentials for an active account and issue tokens.

    Raises:
        AuthenticationError: Unknown email, wrong password, or inactive account.
    """
    if not email or not password:
        raise ValidationError("email and password are required")
    user = user_service.find_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for email=%s", email)
        raise AuthenticationError("Invalid email or password")
    if user.status != UserStatus.ACTIVE.value:
        logger.warning("Login refused for non-active user id=%s status=%s", user.id, user.status)
        raise AuthenticationError("Account is not active")

    user.last_login_at = _utcnow()
    commit_or_raise()
    logger.info("User logged in id=%s", user.id)
    return user, jwt_service.generate_token_pair(user)


def refresh(refresh_token) -> tuple[User, dict]:
    """Exchange a valid refresh token for a new token pair."""
    payload = jwt_service.decode_refresh_token(refresh_token)
    user = db.session.get(User, payload["sub"])
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user, jwt_service.generate_token_pair(user)


def load_active_user(user_id) -> User:
    user = db.session.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


# ═══════════════════════════════════════════════════════════════
# Password lifecycle
# ═══════════════════════════════════════════════════════════════
def change_password(user: User, current_password, new_password) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    user_service.validate_password(new_password, "new_password")
    if current_password == new_password:
        raise ValidationError("New password must differ from the current password",
                              details={"new_password": "unchanged"})
    user.password_hash = hash_password(new_password)
    commit_or_raise()
    logger.info("Password changed for user id=%s", user.id)


def create_password_reset_token(user: User) -> str:
    """Store a fresh reset digest on ``user`` and return the raw token."""
    token = generate_opaque_token()
    ttl = current_app.config.get("PASSWORD_RESET_EXPIRES", 3600)
    user.password_reset_token_hash = hash_token(token)
    user.password_reset_expires = _utcnow() + timedelta(seconds=ttl)
    return token


def request_password_reset(email) -> str | None:
    """Issue a reset token when the address belongs to an active account.

    Returns the raw token (for the delivery channel) or None. The caller
    must respond identically in both cases.
    """
    try:
        normalized = user_service.normalize_email(email)
    except ValidationError:
        return None
    user = user_service.find_by_email(normalized)
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown or inactive address")
        return None
    token = create_password_reset_token(user)
    commit_or_raise()
    logger.info("Password reset token issued for user id=%s", user.id)
    if current_app.debug:
        logger.debug("Password reset token for %s: %s", user.email, token)
    return token


def consume_password_reset_token(token, new_password) -> User:
    """Set a new password if ``token`` matches a stored, unexpired digest.

    Raises:
        InvalidOrExpiredTokenError: Unknown, reused or expired token.
    """
    if not token:
        raise InvalidOrExpiredTokenError()
    user = User.query_active().filter(
        User.password_reset_token_hash == hash_token(token)
    ).first()
    expires = _as_utc(user.password_reset_expires) if user else None
    if user is None or expires is None or expires <= _utcnow():
        raise InvalidOrExpiredTokenError()

    user_service.validate_password(new_password, "new_password")
    user.password_hash = hash_password(new_password)
    user.password_reset_token_hash = None
    user.password_reset_expires = None
    commit_or_raise()
    logger.info("Password reset completed for user id=%s", user.id)
    return user
