"""
Closed vocabularies shared by models, services and the permission table.

Columns store the ``.value`` strings; services validate incoming values
with ``parse_enum`` so unknown values never reach the database.
"""

import enum


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    SPECIALIST = "specialist"
    SECRETARY = "secretary"
    CLIENT = "client"
    VIEWER = "viewer"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING_VERIFICATION = "pending_verification"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


class SpecialistStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    ON_LEAVE = "on_leave"
    INACTIVE = "inactive"


class SecretaryType(str, enum.Enum):
    CORPORATE = "corporate"
    INDIVIDUAL = "individual"


class SecretaryStatus(str, enum.Enum):
    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    INACTIVE = "inactive"


class EntityType(str, enum.Enum):
    SDN_BHD = "SDN_BHD"
    BHD = "BHD"
    LLP = "LLP"
    SOLE_PROP = "SOLE_PROP"
    PARTNERSHIP = "PARTNERSHIP"
    FOREIGN = "FOREIGN"


class CompanyStatus(str, enum.Enum):
    INCORPORATING = "INCORPORATING"
    ACTIVE = "ACTIVE"
    STRUCK_OFF = "STRUCK_OFF"
    DORMANT = "DORMANT"
    LIQUIDATION = "LIQUIDATION"
    INACTIVE = "INACTIVE"


class MimeType(str, enum.Enum):
    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    PDF = "application/pdf"
    MP4 = "video/mp4"


class MediaType(str, enum.Enum):
    PROFILE = "profile"
    GALLERY = "gallery"
    DOCUMENT = "document"
    VIDEO = "video"


class FeeTier(str, enum.Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


def parse_enum(enum_cls, value, field_name):
    """Return ``enum_cls(value)`` or raise ValidationError listing allowed values."""
    from marketplace.core.exceptions import ValidationError

    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"Invalid {field_name}: {value!r}",
            details={field_name: f"must be one of {', '.join(allowed)}"},
        ) from None
