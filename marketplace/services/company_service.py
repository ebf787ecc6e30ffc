"""
Company service — managed companies and their statutory compliance data.

Scope rules:
  ``company.*.any``  — every company
  ``company.*.own``  — companies the caller owns or is the assigned secretary of

Compliance dates may only be changed by holders of
``company.manage.compliance``. Assigning a secretary moves one unit of
company workload from the previous secretary to the new one.
"""

import logging
from datetime import date

from marketplace.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from marketplace.core.records import (
    Auditor,
    BankAccount,
    CompanySecretary,
    Director,
    Shareholder,
    parse_records,
)
from marketplace.models import db
from marketplace.models.company import Company
from marketplace.models.enums import CompanyStatus, EntityType, parse_enum
from marketplace.models.user import User
from marketplace.services import secretary_service
from marketplace.services.permission_service import has_permission
from marketplace.utils.helpers import commit_or_raise, parse_date_strict, parse_decimal

logger = logging.getLogger(__name__)

_TEXT_FIELDS = (
    "legal_name", "company_number", "business_sector", "business_nature",
    "registered_address", "business_address", "phone", "website", "notes",
)
_MONEY_FIELDS = ("authorized_capital", "paid_up_capital", "par_value")
_COMPLIANCE_DATE_FIELDS = (
    "financial_year_end", "next_annual_return_due", "last_annual_return_filed",
    "next_agm_date", "last_agm_held",
)
_COMPLIANCE_FLAG_FIELDS = ("is_agm_held", "is_annual_return_filed")
_RECORD_FIELDS = {
    "directors": Director,
    "shareholders": Shareholder,
    "secretaries": CompanySecretary,
    "auditors": Auditor,
    "bank_accounts": BankAccount,
}


# ═══════════════════════════════════════════════════════════════
# Access helpers
# ═══════════════════════════════════════════════════════════════
def is_party(actor: User, company: Company) -> bool:
    return actor.id in (company.owner_id, company.assigned_secretary_id)


def _require(actor: User, company: Company, action: str) -> None:
    if has_permission(actor, f"company.{action}.any"):
        return
    if has_permission(actor, f"company.{action}.own") and is_party(actor, company):
        return
    logger.warning("User %s denied company.%s on company id=%s", actor.id, action, company.id)
    raise AuthorizationError(
        "You do not have access to this company",
        details={"required_any": [f"company.{action}.any", f"company.{action}.own"]},
    )


def _get(company_id) -> Company:
    company = db.session.get(Company, company_id) if company_id else None
    if company is None or company.deleted_at is not None:
        raise NotFoundError(resource="Company", resource_id=company_id)
    return company


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def list_companies(actor: User, status=None, entity_type=None, search=None):
    q = Company.query_active()
    if not has_permission(actor, "company.read.any"):
        if not has_permission(actor, "company.read.own"):
            raise AuthorizationError("Insufficient permissions", details={"required": "company.read.own"})
        q = q.filter(db.or_(Company.owner_id == actor.id, Company.assigned_secretary_id == actor.id))
    if status:
        q = q.filter(Company.status == parse_enum(CompanyStatus, status, "status").value)
    if entity_type:
        q = q.filter(Company.entity_type == parse_enum(EntityType, entity_type, "entity_type").value)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(db.or_(Company.legal_name.ilike(like), Company.registration_number.ilike(like)))
    return q.order_by(Company.legal_name.asc())


def get_company(actor: User, company_id) -> Company:
    company = _get(company_id)
    _require(actor, company, "read")
    return company


def compliance(actor: User, company_id, today=None) -> dict:
    company = get_company(actor, company_id)
    today = today or date.today()
    due = company.next_compliance_due()
    return {
        "company_id": company.id,
        "is_compliant": company.is_compliant(today),
        "next_compliance_due": due.isoformat() if due else None,
        "next_annual_return_due": company.next_annual_return_due.isoformat()
        if company.next_annual_return_due else None,
        "next_agm_date": company.next_agm_date.isoformat() if company.next_agm_date else None,
        "company_age": company.company_age(today),
    }


# ═══════════════════════════════════════════════════════════════
# Field handling
# ═══════════════════════════════════════════════════════════════
def _apply_fields(actor: User, company: Company, data: dict) -> None:
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(company, field, data[field])
    if not company.legal_name:
        raise ValidationError("legal_name is required", details={"legal_name": "required"})
    if "email" in data:
        company.email = data["email"] or None
    if "entity_type" in data:
        company.entity_type = parse_enum(EntityType, data["entity_type"], "entity_type").value
    if "status" in data:
        company.status = parse_enum(CompanyStatus, data["status"], "status").value
    if "is_active" in data:
        company.is_active = bool(data["is_active"])
    if "incorporation_date" in data:
        company.incorporation_date = parse_date_strict(data["incorporation_date"], "incorporation_date")
    if "total_shares" in data:
        shares = data["total_shares"]
        if shares is not None:
            try:
                shares = int(shares)
            except (TypeError, ValueError):
                shares = -1
            if shares < 0:
                raise ValidationError("total_shares must be a non-negative integer",
                                      details={"total_shares": "invalid"})
        company.total_shares = shares
    for field in _MONEY_FIELDS:
        if field in data:
            value = data[field]
            setattr(company, field, parse_decimal(value, field, minimum=0) if value is not None else None)
    for field, record_cls in _RECORD_FIELDS.items():
        if field in data:
            setattr(company, field, parse_records(record_cls, data[field], field))

    compliance_fields = [
        f for f in _COMPLIANCE_DATE_FIELDS + _COMPLIANCE_FLAG_FIELDS if f in data
    ]
    if compliance_fields and not has_permission(actor, "company.manage.compliance"):
        raise AuthorizationError(
            "Insufficient permissions",
            details={"fields": compliance_fields, "required": "company.manage.compliance"},
        )
    for field in _COMPLIANCE_DATE_FIELDS:
        if field in data:
            setattr(company, field, parse_date_strict(data[field], field))
    for field in _COMPLIANCE_FLAG_FIELDS:
        if field in data:
            setattr(company, field, bool(data[field]))


def _check_registration_number(value, exclude_id=None) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError("registration_number is required",
                              details={"registration_number": "required"})
    q = Company.query.filter(Company.registration_number == value)
    if exclude_id:
        q = q.filter(Company.id != exclude_id)
    if q.first():
        raise ConflictError(resource="Company", field="registration_number", value=value)
    return value


def _require_assign_permission(actor: User) -> None:
    if not (has_permission(actor, "company.update.any")
            or has_permission(actor, "secretary.manage.clients")):
        raise AuthorizationError(
            "Insufficient permissions",
            details={"required_any": ["company.update.any", "secretary.manage.clients"]},
        )


def _assign_secretary(company: Company, secretary_user_id) -> None:
    new_id = secretary_user_id or None
    secretary_service.reassign(company.assigned_secretary_id, new_id, secretary_service.COMPANIES)
    company.assigned_secretary_id = new_id


# ═══════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════
def create_company(actor: User, data: dict) -> Company:
    if not has_permission(actor, "company.create"):
        raise AuthorizationError("Insufficient permissions", details={"required": "company.create"})
    owner_id = actor.id
    if data.get("owner_id") and has_permission(actor, "company.update.any"):
        owner_id = data["owner_id"]
    company = Company(
        registration_number=_check_registration_number(data.get("registration_number")),
        owner_id=owner_id,
        entity_type=EntityType.SDN_BHD.value,
        status=CompanyStatus.INCORPORATING.value,
        is_active=True,
        directors=[],
        shareholders=[],
        secretaries=[],
        auditors=[],
        bank_accounts=[],
    )
    _apply_fields(actor, company, data)

    if data.get("assigned_secretary_id"):
        if data["assigned_secretary_id"] != actor.id:
            _require_assign_permission(actor)
        _assign_secretary(company, data["assigned_secretary_id"])

    db.session.add(company)
    commit_or_raise()
    logger.info("Company created id=%s reg=%s by=%s", company.id, company.registration_number, actor.id)
    return company


def update_company(actor: User, company_id, data: dict) -> Company:
    company = _get(company_id)
    _require(actor, company, "update")
    if "registration_number" in data:
        company.registration_number = _check_registration_number(
            data["registration_number"], exclude_id=company.id
        )
    _apply_fields(actor, company, data)
    if "assigned_secretary_id" in data:
        _require_assign_permission(actor)
        _assign_secretary(company, data["assigned_secretary_id"])
    commit_or_raise()
    logger.info("Company updated id=%s by=%s", company.id, actor.id)
    return company


def assign_secretary(actor: User, company_id, secretary_user_id) -> Company:
    _require_assign_permission(actor)
    company = _get(company_id)
    _assign_secretary(company, secretary_user_id)
    commit_or_raise()
    logger.info("Company id=%s assigned to secretary user=%s by=%s",
                company.id, company.assigned_secretary_id, actor.id)
    return company


def add_director(actor: User, company_id, data: dict) -> Company:
    """Append an active director to the roster."""
    company = _get(company_id)
    _require(actor, company, "update")
    record = parse_records(Director, [{**data, "is_active": True}], "director")[0]
    company.directors = list(company.directors or []) + [record]
    commit_or_raise()
    logger.info("Director added to company id=%s by=%s", company.id, actor.id)
    return company


def add_shareholder(actor: User, company_id, data: dict) -> Company:
    """Append a shareholder appointed today (unless a date is supplied)."""
    company = _get(company_id)
    _require(actor, company, "update")
    payload = {**data, "appointment_date": data.get("appointment_date") or date.today().isoformat()}
    record = parse_records(Shareholder, [payload], "shareholder")[0]
    company.shareholders = list(company.shareholders or []) + [record]
    commit_or_raise()
    logger.info("Shareholder added to company id=%s by=%s", company.id, actor.id)
    return company


def delete_company(actor: User, company_id) -> None:
    company = _get(company_id)
    _require(actor, company, "delete")
    company.soft_delete()
    company.is_active = False
    if company.assigned_secretary_id:
        secretary_service.adjust_workload(company.assigned_secretary_id, companies_delta=-1)
    commit_or_raise()
    logger.info("Company soft-deleted id=%s by=%s", company.id, actor.id)
