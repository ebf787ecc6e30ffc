"""
Specialist listings.

A listing starts as a draft awaiting verification. Pricing fields are
derived by ``lifecycle.compute_final_price`` in the service layer before
every write; ``is_verified`` always mirrors ``verification_status``.
"""

from datetime import datetime, timezone

from marketplace.models import db
from marketplace.models.enums import SpecialistStatus, VerificationStatus
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


def _money(value):
    return float(value) if value is not None else None


class Specialist(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "specialists"

    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    short_bio = db.Column(db.String(500))
    base_price = db.Column(db.Numeric(10, 2), nullable=False)
    platform_fee = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    final_price = db.Column(db.Numeric(10, 2), nullable=False)
    average_rating = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    total_number_of_ratings = db.Column(db.Integer, nullable=False, default=0)
    rating_total = db.Column(db.Integer, nullable=False, default=0)
    is_draft = db.Column(db.Boolean, nullable=False, default=True, index=True)
    verification_status = db.Column(
        db.String(20), nullable=False, default=VerificationStatus.PENDING.value, index=True
    )
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    specialist_status = db.Column(
        db.String(20), nullable=False, default=SpecialistStatus.AVAILABLE.value
    )
    total_projects_completed = db.Column(db.Integer, nullable=False, default=0)
    duration_days = db.Column(db.Integer, nullable=False, default=1)
    experience_started_at = db.Column(db.Date)
    additional_offerings = db.Column(db.JSON, default=list)
    expertise_areas = db.Column(db.JSON, default=list)
    certifications = db.Column(db.JSON, default=list)
    created_by_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    assigned_secretary_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    media = db.relationship(
        "Media", back_populates="specialist", lazy="dynamic", cascade="all, delete-orphan"
    )
    offerings = db.relationship(
        "ServiceOffering", back_populates="specialist", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_publicly_visible(self):
        return (
            not self.is_draft
            and self.verification_status == VerificationStatus.VERIFIED.value
            and self.deleted_at is None
        )

    def is_available(self):
        """Open for work: status available and not a draft."""
        return self.specialist_status == SpecialistStatus.AVAILABLE.value and not self.is_draft

    def can_be_booked(self):
        return self.is_available() and bool(self.is_verified)

    def years_of_experience(self, now=None):
        from marketplace.services.lifecycle import whole_years_since

        start = self.experience_started_at or self.created_at
        if start is None:
            return 0
        return whole_years_since(start, now or datetime.now(timezone.utc))

    def to_dict(self, include_media=False):
        d = {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "short_bio": self.short_bio,
            "base_price": _money(self.base_price),
            "platform_fee": _money(self.platform_fee),
            "final_price": _money(self.final_price),
            "average_rating": _money(self.average_rating),
            "total_number_of_ratings": self.total_number_of_ratings,
            "is_draft": self.is_draft,
            "verification_status": self.verification_status,
            "is_verified": self.is_verified,
            "specialist_status": self.specialist_status,
            "total_projects_completed": self.total_projects_completed,
            "duration_days": self.duration_days,
            "experience_started_at": isoformat(self.experience_started_at),
            "years_of_experience": self.years_of_experience(),
            "additional_offerings": self.additional_offerings or [],
            "expertise_areas": self.expertise_areas or [],
            "certifications": self.certifications or [],
            "is_available": self.is_available(),
            "can_be_booked": self.can_be_booked(),
            "created_by_id": self.created_by_id,
            "assigned_secretary_id": self.assigned_secretary_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_media:
            from marketplace.models.media import Media

            d["media"] = [
                m.to_dict()
                for m in self.media.filter(Media.deleted_at.is_(None))
                .order_by(Media.display_order.asc(), Media.created_at.asc())
            ]
        return d

    def __repr__(self):
        return f"<Specialist {self.slug}>"
