"""
User service — account creation, profile updates and the manager hierarchy.

Every db.session.commit() for the ``users`` table happens here or in
``auth_service``; blueprints stay HTTP-only.
"""

import logging

from email_validator import EmailNotValidError, validate_email

from marketplace.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from marketplace.models import db
from marketplace.models.enums import Role, UserStatus, parse_enum
from marketplace.models.user import User
from marketplace.services.permission_service import (
    ALL_PERMISSIONS,
    has_permission,
    has_role,
)
from marketplace.utils.crypto import hash_password, is_password_hash
from marketplace.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Fields a user may change on their own profile
SELF_EDITABLE_FIELDS = (
    "full_name", "phone_number", "address", "department", "is_profile_complete",
)
# Extra fields only ``user.manage`` holders may change
MANAGED_FIELDS = ("role", "status", "permissions", "manager_id", "registration_number")


# ═══════════════════════════════════════════════════════════════
# Validation helpers
# ═══════════════════════════════════════════════════════════════
def normalize_email(email) -> str:
    if not email or not isinstance(email, str):
        raise ValidationError("email is required", details={"email": "required"})
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ValidationError("Invalid email address", details={"email": str(exc)}) from exc


def validate_password(password, field_name="password") -> str:
    if not password or not isinstance(password, str):
        raise ValidationError(f"{field_name} is required", details={field_name: "required"})
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{field_name} must be at least {MIN_PASSWORD_LENGTH} characters",
            details={field_name: f"min length {MIN_PASSWORD_LENGTH}"},
        )
    return password


def validate_permissions(permissions):
    if permissions is None:
        return None
    if not isinstance(permissions, list):
        raise ValidationError("permissions must be a list", details={"permissions": "expected list"})
    unknown = sorted(set(permissions) - ALL_PERMISSIONS)
    if unknown:
        raise ValidationError("Unknown permissions", details={"permissions": unknown})
    return sorted(set(permissions)) or None


# ═══════════════════════════════════════════════════════════════
# Creation
# ═══════════════════════════════════════════════════════════════
def build_user(data: dict, role=Role.VIEWER, status=UserStatus.ACTIVE) -> User:
    """Validate input and add a new (uncommitted) User to the session.

    Raises:
        ValidationError: Missing/invalid email, password or full_name.
        ConflictError: Email already registered.
    """
    email = normalize_email(data.get("email"))
    password = validate_password(data.get("password"))
    full_name = (data.get("full_name") or "").strip()
    if not full_name:
        raise ValidationError("full_name is required", details={"full_name": "required"})

    if User.query.filter_by(email=email).first():
        raise ConflictError(resource="User", field="email", value=email)

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone_number=data.get("phone_number"),
        address=data.get("address"),
        department=data.get("department"),
        registration_number=data.get("registration_number"),
        role=parse_enum(Role, role, "role").value,
        status=parse_enum(UserStatus, status, "status").value,
        manager_id=data.get("manager_id"),
    )
    db.session.add(user)
    return user


def get_user(user_id) -> User:
    user = db.session.get(User, user_id) if user_id else None
    if user is None or user.deleted_at is not None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def find_by_email(email) -> User | None:
    if not email:
        return None
    return User.query_active().filter(User.email == email.strip().lower()).first()


# ═══════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════
def list_users(role=None, status=None, search=None):
    """Query of active users, optionally filtered."""
    q = User.query_active()
    if role:
        q = q.filter(User.role == parse_enum(Role, role, "role").value)
    if status:
        q = q.filter(User.status == parse_enum(UserStatus, status, "status").value)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(db.or_(User.email.ilike(like), User.full_name.ilike(like)))
    return q.order_by(User.created_at.desc())


def list_team_members(manager_id):
    """Direct reports of ``manager_id`` (hierarchy is a lookup, not ownership)."""
    return (
        User.query_active()
        .filter(User.manager_id == manager_id)
        .order_by(User.full_name.asc())
        .all()
    )


def can_view_user(actor: User, target: User) -> bool:
    return (
        actor.id == target.id
        or has_permission(actor, "user.read")
        or target.manager_id == actor.id
    )


def view_user(actor: User, user_id) -> User:
    target = get_user(user_id)
    if not can_view_user(actor, target):
        raise AuthorizationError("You do not have access to this user")
    return target


# ═══════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════
def update_user(actor: User, user_id, data: dict) -> User:
    """Update a profile.

    Users may edit their own basic fields; holders of ``user.update`` may
    edit anyone's basic fields; role/status/permissions/manager need
    ``user.manage``, as does setting a password (self-service password
    changes use ``auth_service.change_password``). Only a super-admin may
    grant the super-admin role.
    """
    target = get_user(user_id)
    is_self = actor.id == target.id
    if not is_self and not has_permission(actor, "user.update"):
        raise AuthorizationError("You do not have access to this user")

    managed = [f for f in MANAGED_FIELDS if f in data]
    if managed and not has_permission(actor, "user.manage"):
        raise AuthorizationError(
            "Insufficient permissions", details={"fields": managed, "required": "user.manage"}
        )

    # Only user.manage sets passwords here; users go through change-password
    if data.get("password") and not has_permission(actor, "user.manage"):
        if is_self:
            raise ValidationError(
                "Use /api/v1/auth/change-password to change your password",
                details={"password": "not editable here"},
            )
        raise AuthorizationError(
            "Insufficient permissions", details={"fields": ["password"], "required": "user.manage"}
        )

    for field in SELF_EDITABLE_FIELDS:
        if field in data:
            setattr(target, field, data[field])

    if "email" in data:
        email = normalize_email(data["email"])
        if email != target.email:
            if User.query.filter(User.email == email, User.id != target.id).first():
                raise ConflictError(resource="User", field="email", value=email)
            target.email = email

    if "password" in data and data["password"]:
        # An already-hashed value is stored as-is; anything else is hashed
        if is_password_hash(data["password"]):
            target.password_hash = data["password"]
        else:
            target.password_hash = hash_password(validate_password(data["password"]))

    if "role" in data:
        role = parse_enum(Role, data["role"], "role")
        if role is Role.SUPER_ADMIN and not has_role(actor, {Role.SUPER_ADMIN}):
            raise AuthorizationError("Only a super admin can grant the super_admin role")
        target.role = role.value
    if "status" in data:
        target.status = parse_enum(UserStatus, data["status"], "status").value
    if "permissions" in data:
        target.permissions = validate_permissions(data["permissions"])
    if "manager_id" in data:
        manager_id = data["manager_id"]
        if manager_id:
            if manager_id == target.id:
                raise ValidationError("A user cannot manage themselves",
                                      details={"manager_id": "self reference"})
            get_user(manager_id)
        target.manager_id = manager_id or None
    if "registration_number" in data:
        target.registration_number = data["registration_number"]

    commit_or_raise()
    logger.info("User updated id=%s by=%s", target.id, actor.id)
    return target


def delete_user(actor: User, user_id) -> None:
    if not has_permission(actor, "user.delete"):
        raise AuthorizationError("Insufficient permissions", details={"required": "user.delete"})
    target = get_user(user_id)
    if target.id == actor.id:
        raise ValidationError("You cannot delete your own account")
    if target.role == Role.SUPER_ADMIN.value and not has_role(actor, {Role.SUPER_ADMIN}):
        raise AuthorizationError("Only a super admin can delete a super admin")
    target.soft_delete()
    target.status = UserStatus.INACTIVE.value
    commit_or_raise()
    logger.info("User soft-deleted id=%s by=%s", target.id, actor.id)
