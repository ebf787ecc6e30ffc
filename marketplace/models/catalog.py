"""
Service catalog and pricing configuration.

ServiceMaster     — catalog of service titles offered on the marketplace
ServiceOffering   — specialist <-> catalog entry (unique per pair)
PlatformFee       — price-range tiers that set a listing's platform fee
"""

from marketplace.models import db
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


# ═══════════════════════════════════════════════════════════════
# 1. SERVICE MASTER
# ═══════════════════════════════════════════════════════════════
class ServiceMaster(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "service_master"

    title = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text)
    s3_key = db.Column(db.String(500))
    bucket_name = db.Column(db.String(255))

    offerings = db.relationship("ServiceOffering", back_populates="service_master", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "s3_key": self.s3_key,
            "bucket_name": self.bucket_name,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# 2. SERVICE OFFERINGS
# ═══════════════════════════════════════════════════════════════
class ServiceOffering(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "service_offerings"

    specialist_id = db.Column(
        db.String(36), db.ForeignKey("specialists.id", ondelete="CASCADE"), nullable=False
    )
    service_master_id = db.Column(
        db.String(36), db.ForeignKey("service_master.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        db.UniqueConstraint(
            "specialist_id", "service_master_id", name="uq_offering_specialist_service"
        ),
    )

    specialist = db.relationship("Specialist", back_populates="offerings")
    service_master = db.relationship("ServiceMaster", back_populates="offerings")

    def to_dict(self):
        return {
            "id": self.id,
            "specialist_id": self.specialist_id,
            "service_master_id": self.service_master_id,
            "service": self.service_master.to_dict() if self.service_master else None,
            "created_at": isoformat(self.created_at),
        }


# ═══════════════════════════════════════════════════════════════
# 3. PLATFORM FEE TIERS
# ═══════════════════════════════════════════════════════════════
class PlatformFee(TimestampMixin, db.Model):
    __tablename__ = "platform_fees"

    tier_name = db.Column(db.String(20), unique=True, nullable=False)
    min_value = db.Column(db.Numeric(12, 2), nullable=False)
    max_value = db.Column(db.Numeric(12, 2), nullable=False)
    platform_fee_percentage = db.Column(db.Numeric(5, 2), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "tier_name": self.tier_name,
            "min_value": float(self.min_value),
            "max_value": float(self.max_value),
            "platform_fee_percentage": float(self.platform_fee_percentage),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
