"""
Permission Service — role → permission resolution and ownership checks.

Permission codenames follow ``resource.action[.scope]``:
    specialist.update.own   — may update listings the user created
    specialist.update.any   — may update any listing

Resolution order:
  1. ``super_admin`` passes every check.
  2. A non-empty ``user.permissions`` override list replaces the role set.
  3. Otherwise the static ``ROLE_PERMISSIONS`` table for the user's role.

Usage:
    from marketplace.services.permission_service import has_permission, check_ownership

    if has_permission(user, "specialist.publish"):
        ...
    check_ownership(user, specialist, bypass_roles=MUTATION_BYPASS_ROLES)
"""

import logging

from marketplace.core.exceptions import AuthorizationError
from marketplace.models.enums import Role

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Permission catalog
# ═══════════════════════════════════════════════════════════════
SPECIALIST_PERMISSIONS = (
    "specialist.create",
    "specialist.read.any",
    "specialist.read.own",
    "specialist.update.any",
    "specialist.update.own",
    "specialist.delete.any",
    "specialist.delete.own",
    "specialist.publish",
)
COMPANY_PERMISSIONS = (
    "company.create",
    "company.read.any",
    "company.read.own",
    "company.update.any",
    "company.update.own",
    "company.delete.any",
    "company.delete.own",
    "company.manage.compliance",
)
SECRETARY_PERMISSIONS = (
    "secretary.create",
    "secretary.read",
    "secretary.update",
    "secretary.delete",
    "secretary.manage.clients",
    "secretary.manage.specialists",
)
MEDIA_PERMISSIONS = ("media.upload", "media.delete", "media.read")
USER_PERMISSIONS = ("user.manage", "user.read", "user.update", "user.delete")
PLATFORM_FEE_PERMISSIONS = ("platform_fee.manage", "platform_fee.read")
SERVICE_PERMISSIONS = ("service.manage", "service.read")

ALL_PERMISSIONS = frozenset(
    SPECIALIST_PERMISSIONS
    + COMPANY_PERMISSIONS
    + SECRETARY_PERMISSIONS
    + MEDIA_PERMISSIONS
    + USER_PERMISSIONS
    + PLATFORM_FEE_PERMISSIONS
    + SERVICE_PERMISSIONS
)

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.SUPER_ADMIN: ALL_PERMISSIONS,
    Role.ADMIN: frozenset({
        "specialist.create", "specialist.read.any", "specialist.update.any",
        "specialist.delete.any", "specialist.publish",
        "company.create", "company.read.any", "company.update.any",
        "company.delete.any", "company.manage.compliance",
        "secretary.create", "secretary.read", "secretary.update",
        "media.upload", "media.delete", "media.read",
        "user.read",
        "platform_fee.read",
        "service.read", "service.manage",
    }),
    Role.MANAGER: frozenset({
        "specialist.create", "specialist.read.any", "specialist.update.own",
        "specialist.publish",
        "company.read.any",
        "secretary.read",
        "media.upload", "media.read",
        "user.read",
        "service.read",
    }),
    Role.SPECIALIST: frozenset({
        "specialist.create", "specialist.read.own", "specialist.update.own",
        "specialist.delete.own", "specialist.publish",
        "media.upload", "media.delete", "media.read",
        "service.read",
    }),
    Role.SECRETARY: frozenset({
        "company.create", "company.read.own", "company.update.own",
        "company.manage.compliance",
        "specialist.read.any",
        "media.upload", "media.read",
        "service.read",
    }),
    Role.CLIENT: frozenset({
        "company.read.own", "company.update.own",
        "specialist.read.any",
        "media.upload", "media.read",
        "service.read",
    }),
    Role.VIEWER: frozenset({
        "specialist.read.any",
        "media.read",
        "service.read",
    }),
}


# Roles that skip ownership checks, per kind of operation
READ_BYPASS_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER})
MUTATION_BYPASS_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
PRIVILEGED_ROLES = READ_BYPASS_ROLES


# ═══════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════
def _role_of(user) -> Role | None:
    try:
        return Role(user.role)
    except (ValueError, AttributeError):
        return None


def get_effective_permissions(user) -> frozenset[str]:
    """Explicit override list if non-empty, else the role's static set."""
    if user is None:
        return frozenset()
    role = _role_of(user)
    if role is Role.SUPER_ADMIN:
        return ALL_PERMISSIONS
    if user.permissions:
        return frozenset(user.permissions)
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(user, codename: str) -> bool:
    if user is None:
        return False
    if _role_of(user) is Role.SUPER_ADMIN:
        return True
    return codename in get_effective_permissions(user)


def has_any_permission(user, codenames) -> bool:
    return any(has_permission(user, c) for c in codenames)


def has_role(user, roles) -> bool:
    role = _role_of(user)
    return role is not None and role in {Role(r) for r in roles}


def require_permission(user, codename: str) -> None:
    """Raise AuthorizationError unless ``user`` holds ``codename``."""
    if not has_permission(user, codename):
        logger.warning(
            "User %s denied: missing permission '%s'",
            getattr(user, "id", None), codename,
        )
        raise AuthorizationError(
            "Insufficient permissions", details={"required": codename}
        )


def require_any_permission(user, *codenames: str) -> None:
    if not has_any_permission(user, codenames):
        logger.warning(
            "User %s denied: missing any of %s", getattr(user, "id", None), codenames,
        )
        raise AuthorizationError(
            "Insufficient permissions", details={"required_any": list(codenames)}
        )


def require_role(user, roles) -> None:
    """Raise AuthorizationError unless the user's role is one of ``roles``."""
    if not has_role(user, roles):
        logger.warning(
            "User %s denied: role %s not in %s",
            getattr(user, "id", None), getattr(user, "role", None),
            sorted(Role(r).value for r in roles),
        )
        raise AuthorizationError("Insufficient role")


def owns(user, resource, owner_attr: str = "created_by_id") -> bool:
    return user is not None and getattr(resource, owner_attr, None) == user.id


def check_ownership(
    user,
    resource,
    bypass_roles=PRIVILEGED_ROLES,
    owner_attr: str = "created_by_id",
) -> None:
    """Allow privileged roles or the resource owner; raise otherwise."""
    if has_role(user, bypass_roles):
        return
    if owns(user, resource, owner_attr):
        return
    logger.warning(
        "User %s denied: not owner of %s id=%s",
        getattr(user, "id", None), type(resource).__name__, getattr(resource, "id", None),
    )
    raise AuthorizationError("You do not have access to this resource")


def can_act(user, resource, any_codename: str, own_codename: str,
            owner_attr: str = "created_by_id") -> bool:
    """``*.any`` permission, or ``*.own`` permission plus ownership."""
    if has_permission(user, any_codename):
        return True
    return has_permission(user, own_codename) and owns(user, resource, owner_attr)


def require_scoped_permission(user, resource, any_codename: str, own_codename: str,
                              owner_attr: str = "created_by_id") -> None:
    if not can_act(user, resource, any_codename, own_codename, owner_attr):
        logger.warning(
            "User %s denied: needs %s or owned %s on %s id=%s",
            getattr(user, "id", None), any_codename, own_codename,
            type(resource).__name__, getattr(resource, "id", None),
        )
        raise AuthorizationError(
            "You do not have access to this resource",
            details={"required_any": [any_codename, own_codename]},
        )
