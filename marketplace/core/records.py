"""
Typed records stored inside JSON columns.

Specialists, secretaries and companies keep several small structured lists
(certifications, directors, shareholders, bank accounts ...) in JSON
columns. Each list element is described here as a dataclass and validated
at the service boundary with ``parse_records`` before it reaches the
database, so the stored JSON always has a known shape.

Usage:
    from marketplace.core.records import Director, parse_records

    company.directors = parse_records(Director, payload["directors"], "directors")
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from marketplace.core.exceptions import ValidationError
from marketplace.utils.helpers import parse_date


@dataclass
class Record:
    """Base class: dict <-> dataclass conversion with light type coercion."""

    @classmethod
    def from_dict(cls, data: dict, path: str = "") -> "Record":
        if not isinstance(data, dict):
            raise ValidationError(f"{path or cls.__name__} must be an object")
        values = {}
        errors = {}
        for f in dataclasses.fields(cls):
            key = f"{path}.{f.name}" if path else f.name
            raw = data.get(f.name)
            required = (
                f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING
            )
            if raw is None or raw == "":
                if required:
                    errors[key] = "required"
                continue
            kind = f.metadata.get("kind", "str")
            try:
                values[f.name] = _coerce(kind, raw)
            except (ValueError, TypeError, InvalidOperation):
                errors[key] = f"invalid {kind}"
        if errors:
            raise ValidationError(f"Invalid {cls.__name__.lower()} record", details=errors)
        return cls(**values)

    def to_dict(self) -> dict:
        out = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = float(value)
            out[f.name] = value
        return out


def _coerce(kind: str, raw):
    if kind == "date":
        parsed = parse_date(raw)
        if parsed is None:
            raise ValueError(raw)
        return parsed
    if kind == "int":
        if isinstance(raw, bool):
            raise TypeError(raw)
        return int(raw)
    if kind == "decimal":
        return Decimal(str(raw))
    if kind == "bool":
        if isinstance(raw, bool):
            return raw
        if str(raw).lower() in ("true", "1", "yes"):
            return True
        if str(raw).lower() in ("false", "0", "no"):
            return False
        raise ValueError(raw)
    return str(raw).strip()


def _date(**kwargs):
    return field(metadata={"kind": "date"}, **kwargs)


# ═══════════════════════════════════════════════════════════════
# Specialist / Secretary records
# ═══════════════════════════════════════════════════════════════
@dataclass
class Certification(Record):
    name: str
    issuing_organization: str
    issue_date: date = _date()
    expiry_date: date | None = _date(default=None)
    credential_id: str | None = None


@dataclass
class ContactInformation(Record):
    office_phone: str | None = None
    mobile_phone: str | None = None
    office_address: str | None = None
    emergency_contact: str | None = None


# ═══════════════════════════════════════════════════════════════
# Company records
# ═══════════════════════════════════════════════════════════════
@dataclass
class Director(Record):
    name: str
    identification_number: str
    nationality: str
    address: str
    appointment_date: date = _date()
    resignation_date: date | None = _date(default=None)
    is_active: bool = field(default=True, metadata={"kind": "bool"})


@dataclass
class Shareholder(Record):
    name: str
    identification_number: str
    shares_held: int = field(metadata={"kind": "int"})
    share_percentage: Decimal = field(metadata={"kind": "decimal"})
    appointment_date: date = _date()


@dataclass
class CompanySecretary(Record):
    name: str
    registration_number: str
    appointment_date: date = _date()
    resignation_date: date | None = _date(default=None)


@dataclass
class Auditor(Record):
    firm_name: str
    registration_number: str
    appointment_date: date = _date()


@dataclass
class BankAccount(Record):
    bank_name: str
    account_number: str
    account_type: str
    currency: str = "MYR"
    is_primary: bool = field(default=False, metadata={"kind": "bool"})


# ── Helpers ─────────────────────────────────────────────────────────────

def parse_records(record_cls: type[Record], items, field_name: str) -> list[dict]:
    """Validate a JSON list of records and return it in storage form.

    Raises:
        ValidationError: If ``items`` is not a list or any element is invalid.
    """
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"{field_name} must be a list", details={field_name: "expected list"})
    return [
        record_cls.from_dict(item, path=f"{field_name}[{i}]").to_dict()
        for i, item in enumerate(items)
    ]


def parse_record(record_cls: type[Record], data, field_name: str) -> dict | None:
    """Validate a single embedded record; ``None`` passes through."""
    if data is None:
        return None
    return record_cls.from_dict(data, path=field_name).to_dict()


def parse_string_list(items, field_name: str) -> list[str]:
    """Validate a JSON list of non-empty strings."""
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(i, str) and i.strip() for i in items):
        raise ValidationError(
            f"{field_name} must be a list of strings",
            details={field_name: "expected list of non-empty strings"},
        )
    return [i.strip() for i in items]
