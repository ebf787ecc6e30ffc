"""Shared utility functions used by services and blueprints.

get_active_or_404:  fetch a live (not soft-deleted) row or raise NotFoundError
parse_date:         lenient date parsing (returns None on bad input)
parse_date_strict:  payload date fields (None only when empty, 400 otherwise)
parse_decimal:      strict Decimal parsing for money and percentages
commit_or_raise:    commit the session, translating IntegrityError into typed errors
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError

from marketplace.models import db

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes raised through psycopg
PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_NOT_NULL_VIOLATION = "23502"
PG_INVALID_TEXT_REPRESENTATION = "22P02"


def get_active_or_404(model, pk, label=None):
    """Fetch a model instance by primary key, ignoring soft-deleted rows.

    Raises:
        NotFoundError: If the row does not exist or carries a tombstone.
    """
    from marketplace.core.exceptions import NotFoundError

    label = label or model.__name__
    obj = db.session.get(model, pk) if pk else None
    if obj is None or getattr(obj, "deleted_at", None) is not None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_strict(value, field_name):
    """Parse a date field from a request payload.

    Empty / null input clears the field (returns None); anything else that
    is not a recognisable date is rejected.

    Raises:
        ValidationError: If ``value`` is non-empty and not a date.
    """
    from marketplace.core.exceptions import ValidationError

    if value is None or value == "":
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)",
                              details={field_name: "invalid date"})
    return parsed


def parse_decimal(value, field_name, minimum=None, maximum=None):
    """Parse a money/percentage value into a Decimal.

    Raises:
        ValidationError: If the value is missing, not numeric, or out of range.
    """
    from marketplace.core.exceptions import ValidationError

    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required", details={field_name: "required"})
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number", details={field_name: "not a number"})
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a number", details={field_name: "not a number"})
    if minimum is not None and result < Decimal(str(minimum)):
        raise ValidationError(
            f"{field_name} must be >= {minimum}", details={field_name: f"min {minimum}"}
        )
    if maximum is not None and result > Decimal(str(maximum)):
        raise ValidationError(
            f"{field_name} must be <= {maximum}", details={field_name: f"max {maximum}"}
        )
    return result


def isoformat(value):
    """ISO-8601 string for a date/datetime, None passthrough."""
    return value.isoformat() if value else None


# ── Database commit helper ───────────────────────────────────────────────────

def classify_integrity_error(exc: IntegrityError):
    """Map an IntegrityError onto a typed AppError.

    PostgreSQL reports SQLSTATE through ``exc.orig.sqlstate`` (psycopg 3) or
    ``exc.orig.pgcode`` (psycopg2); SQLite only gives message text.
    """
    from marketplace.core.exceptions import ConflictError, ValidationError

    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    text = str(orig or exc)

    if sqlstate == PG_UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
        return ConflictError(resource="Record", field=_unique_field(text))
    if sqlstate == PG_FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in text:
        return ValidationError("Referenced record does not exist", details={"reason": "foreign_key"})
    if sqlstate == PG_NOT_NULL_VIOLATION or "NOT NULL constraint failed" in text:
        return ValidationError("A required field is missing", details={"reason": "not_null"})
    if sqlstate == PG_INVALID_TEXT_REPRESENTATION:
        return ValidationError("Invalid value format", details={"reason": "invalid_format"})
    return ValidationError("Constraint violation", details={"reason": "constraint"})


def _unique_field(text: str) -> str:
    # SQLite: "UNIQUE constraint failed: users.email"
    if "UNIQUE constraint failed:" in text:
        column = text.split("UNIQUE constraint failed:", 1)[1].strip().split(",")[0]
        return column.split(".")[-1]
    # PostgreSQL: 'Key (email)=(a@b.c) already exists.'
    if "Key (" in text:
        return text.split("Key (", 1)[1].split(")", 1)[0]
    return "value"


def commit_or_raise():
    """Commit the current session, rolling back and raising a typed error on failure.

    IntegrityError → ConflictError (unique) or ValidationError (other constraints).
    Anything else is rolled back and re-raised for the 500 handler.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise classify_integrity_error(exc) from exc
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        raise
