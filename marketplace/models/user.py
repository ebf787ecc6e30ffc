"""
User model — every account on the marketplace regardless of role.

Roles and statuses are closed vocabularies (see ``enums``). ``permissions``
holds an optional explicit override list; when null or empty the role's
permission set applies (see ``permission_service``). The manager hierarchy
is a plain ``manager_id`` foreign key resolved by lookup.
"""

from marketplace.models import db
from marketplace.models.enums import Role, UserStatus
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


class User(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "users"

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    phone_number = db.Column(db.String(50))
    address = db.Column(db.Text)
    profile_image = db.Column(db.String(500))
    profile_image_public_id = db.Column(db.String(255))
    department = db.Column(db.String(100))
    role = db.Column(db.String(20), nullable=False, default=Role.VIEWER.value, index=True)
    status = db.Column(
        db.String(30), nullable=False, default=UserStatus.PENDING_VERIFICATION.value
    )
    permissions = db.Column(db.JSON, nullable=True)
    manager_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    registration_number = db.Column(db.String(100))
    is_email_verified = db.Column(db.Boolean, default=False)
    is_profile_complete = db.Column(db.Boolean, default=False)
    last_login_at = db.Column(db.DateTime)
    password_reset_token_hash = db.Column(db.String(64), index=True)
    password_reset_expires = db.Column(db.DateTime)

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE.value and self.deleted_at is None

    @property
    def role_enum(self):
        return Role(self.role)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "address": self.address,
            "profile_image": self.profile_image,
            "department": self.department,
            "role": self.role,
            "status": self.status,
            "permissions": self.permissions or [],
            "manager_id": self.manager_id,
            "registration_number": self.registration_number,
            "is_email_verified": bool(self.is_email_verified),
            "is_profile_complete": bool(self.is_profile_complete),
            "last_login_at": isoformat(self.last_login_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<User {self.email} role={self.role}>"
