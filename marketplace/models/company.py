"""
Companies managed by corporate secretaries.

Statutory rosters (directors, shareholders, secretaries, auditors, bank
accounts) live in JSON columns as validated records from
``marketplace.core.records``.
"""

from datetime import date

from marketplace.models import db
from marketplace.models.enums import CompanyStatus, EntityType
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


def _num(value):
    return float(value) if value is not None else None


class Company(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "companies"

    legal_name = db.Column(db.String(255), nullable=False)
    registration_number = db.Column(db.String(100), unique=True, nullable=False, index=True)
    company_number = db.Column(db.String(100))
    entity_type = db.Column(db.String(20), nullable=False, default=EntityType.SDN_BHD.value)
    status = db.Column(db.String(20), nullable=False, default=CompanyStatus.INCORPORATING.value)
    incorporation_date = db.Column(db.Date)
    business_sector = db.Column(db.String(255))
    business_nature = db.Column(db.Text)
    authorized_capital = db.Column(db.Numeric(15, 2))
    paid_up_capital = db.Column(db.Numeric(15, 2))
    total_shares = db.Column(db.Integer)
    par_value = db.Column(db.Numeric(10, 2))
    financial_year_end = db.Column(db.Date)
    next_annual_return_due = db.Column(db.Date)
    last_annual_return_filed = db.Column(db.Date)
    next_agm_date = db.Column(db.Date)
    last_agm_held = db.Column(db.Date)
    is_agm_held = db.Column(db.Boolean, default=False)
    is_annual_return_filed = db.Column(db.Boolean, default=False)
    registered_address = db.Column(db.Text)
    business_address = db.Column(db.Text)
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    website = db.Column(db.String(255))
    directors = db.Column(db.JSON, default=list)
    shareholders = db.Column(db.JSON, default=list)
    secretaries = db.Column(db.JSON, default=list)
    auditors = db.Column(db.JSON, default=list)
    bank_accounts = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    assigned_secretary_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    def is_compliant(self, today=None):
        from marketplace.services.lifecycle import is_compliant

        return is_compliant(self.next_annual_return_due, self.next_agm_date, today or date.today())

    def next_compliance_due(self):
        from marketplace.services.lifecycle import next_compliance_due

        return next_compliance_due(self.next_annual_return_due, self.next_agm_date)

    def company_age(self, today=None):
        from marketplace.services.lifecycle import whole_years_since

        if self.incorporation_date is None:
            return 0
        return whole_years_since(self.incorporation_date, today or date.today())

    def to_dict(self):
        return {
            "id": self.id,
            "legal_name": self.legal_name,
            "registration_number": self.registration_number,
            "company_number": self.company_number,
            "entity_type": self.entity_type,
            "status": self.status,
            "incorporation_date": isoformat(self.incorporation_date),
            "business_sector": self.business_sector,
            "business_nature": self.business_nature,
            "authorized_capital": _num(self.authorized_capital),
            "paid_up_capital": _num(self.paid_up_capital),
            "total_shares": self.total_shares,
            "par_value": _num(self.par_value),
            "financial_year_end": isoformat(self.financial_year_end),
            "next_annual_return_due": isoformat(self.next_annual_return_due),
            "last_annual_return_filed": isoformat(self.last_annual_return_filed),
            "next_agm_date": isoformat(self.next_agm_date),
            "last_agm_held": isoformat(self.last_agm_held),
            "is_agm_held": bool(self.is_agm_held),
            "is_annual_return_filed": bool(self.is_annual_return_filed),
            "registered_address": self.registered_address,
            "business_address": self.business_address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "directors": self.directors or [],
            "shareholders": self.shareholders or [],
            "secretaries": self.secretaries or [],
            "auditors": self.auditors or [],
            "bank_accounts": self.bank_accounts or [],
            "notes": self.notes,
            "is_active": self.is_active,
            "owner_id": self.owner_id,
            "assigned_secretary_id": self.assigned_secretary_id,
            "is_compliant": self.is_compliant(),
            "next_compliance_due": isoformat(self.next_compliance_due()),
            "company_age": self.company_age(),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Company {self.registration_number}>"
