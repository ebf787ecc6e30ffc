"""
Secretary profiles — 1:1 with a User whose role is ``secretary``.

Workload counters and the two acceptance flags are only mutated through
``secretary_service`` (which recomputes the flags on every change); the
update API never sets them directly.
"""

from marketplace.models import db
from marketplace.models.enums import SecretaryStatus, SecretaryType
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


def _num(value):
    return float(value) if value is not None else None


class Secretary(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "secretaries"

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )
    registration_number = db.Column(db.String(100), unique=True, nullable=False)
    secretary_type = db.Column(
        db.String(20), nullable=False, default=SecretaryType.INDIVIDUAL.value
    )
    status = db.Column(db.String(20), nullable=False, default=SecretaryStatus.ACTIVE.value)
    registration_date = db.Column(db.Date)
    expiry_date = db.Column(db.Date)
    qualification = db.Column(db.String(255))
    company_name = db.Column(db.String(255), default="ST Comp Holdings")
    experience = db.Column(db.Text)
    areas_of_expertise = db.Column(db.JSON, default=list)
    certifications = db.Column(db.JSON, default=list)
    contact_information = db.Column(db.JSON)
    total_companies_managed = db.Column(db.Integer, nullable=False, default=0)
    total_specialists_managed = db.Column(db.Integer, nullable=False, default=0)
    satisfaction_rate = db.Column(db.Numeric(5, 2), default=0)
    years_of_experience = db.Column(db.Integer, default=0)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    verification_notes = db.Column(db.Text)
    verified_at = db.Column(db.DateTime)
    verified_by_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    hourly_rate = db.Column(db.Numeric(10, 2))
    monthly_rate = db.Column(db.Numeric(10, 2))
    avatar = db.Column(db.String(500))
    avatar_public_id = db.Column(db.String(255))
    banner = db.Column(db.String(500))
    banner_public_id = db.Column(db.String(255))
    availability_schedule = db.Column(db.JSON)
    is_accepting_new_companies = db.Column(db.Boolean, nullable=False, default=True)
    is_accepting_new_specialists = db.Column(db.Boolean, nullable=False, default=True)
    manager_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    user = db.relationship("User", foreign_keys=[user_id])

    def is_available(self):
        return self.status == SecretaryStatus.ACTIVE.value and bool(self.is_verified)

    def workload(self):
        from marketplace.services.lifecycle import workload_percentage

        return workload_percentage(self.total_companies_managed, self.total_specialists_managed)

    def is_overloaded(self):
        from marketplace.services.lifecycle import is_overloaded

        return is_overloaded(self.workload())

    def can_take_more_companies(self):
        return self.is_available() and bool(self.is_accepting_new_companies)

    def can_take_more_specialists(self):
        return self.is_available() and bool(self.is_accepting_new_specialists)

    def to_dict(self, include_user=False):
        d = {
            "id": self.id,
            "user_id": self.user_id,
            "registration_number": self.registration_number,
            "secretary_type": self.secretary_type,
            "status": self.status,
            "registration_date": isoformat(self.registration_date),
            "expiry_date": isoformat(self.expiry_date),
            "qualification": self.qualification,
            "company_name": self.company_name,
            "experience": self.experience,
            "areas_of_expertise": self.areas_of_expertise or [],
            "certifications": self.certifications or [],
            "contact_information": self.contact_information,
            "total_companies_managed": self.total_companies_managed,
            "total_specialists_managed": self.total_specialists_managed,
            "satisfaction_rate": _num(self.satisfaction_rate),
            "years_of_experience": self.years_of_experience,
            "is_verified": self.is_verified,
            "verification_notes": self.verification_notes,
            "verified_at": isoformat(self.verified_at),
            "verified_by_id": self.verified_by_id,
            "hourly_rate": _num(self.hourly_rate),
            "monthly_rate": _num(self.monthly_rate),
            "avatar": self.avatar,
            "banner": self.banner,
            "availability_schedule": self.availability_schedule,
            "is_accepting_new_companies": self.is_accepting_new_companies,
            "is_accepting_new_specialists": self.is_accepting_new_specialists,
            "manager_id": self.manager_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_user and self.user is not None:
            d["user"] = self.user.to_dict()
        return d

    def __repr__(self):
        return f"<Secretary {self.registration_number}>"
