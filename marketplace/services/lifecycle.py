"""
Entity lifecycle rules — pure functions, no database access.

Services call these explicitly before persisting so every derived field
(slug, final price, average rating, workload flags, compliance status) is
computed in one place and is trivially unit-testable.
"""

import logging
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

MAX_COMPANIES = 50
MAX_SPECIALISTS = 30
OVERLOAD_THRESHOLD = Decimal("80")

DEFAULT_FEE_PERCENTAGE = Decimal("10")
DAYS_PER_YEAR = 365.25

MIN_RATING = 1
MAX_RATING = 5

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_MULTI_DASH = re.compile(r"--+")


# ── Slugs ───────────────────────────────────────────────────────────────

def slugify(title: str) -> str:
    """Lowercase, drop punctuation, hyphenate whitespace, collapse dashes.

    ``"Tax & Audit Review!!"`` → ``"tax-audit-review"``
    """
    slug = title.strip().lower()
    slug = _NON_WORD.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _MULTI_DASH.sub("-", slug)
    return slug.strip("-")


def unique_slug(base: str, taken) -> str:
    """Append ``-2``, ``-3`` ... until ``taken(candidate)`` is false."""
    candidate = base
    n = 2
    while taken(candidate):
        candidate = f"{base}-{n}"
        n += 1
    return candidate


# ── Pricing ─────────────────────────────────────────────────────────────

def compute_final_price(base_price, fee_percentage) -> Decimal:
    """base + base × fee / 100, rounded half-up to 2 decimal places."""
    base = Decimal(str(base_price))
    fee = Decimal(str(fee_percentage or 0))
    return (base + base * fee / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_fee_percentage(tiers, price, default=DEFAULT_FEE_PERCENTAGE) -> Decimal:
    """Return the fee of the first tier whose [min, max] contains ``price``.

    ``tiers`` is any iterable of objects with ``min_value``, ``max_value`` and
    ``platform_fee_percentage``. Falls back to ``default`` with a warning.
    """
    price = Decimal(str(price))
    for tier in sorted(tiers, key=lambda t: Decimal(str(t.min_value))):
        if Decimal(str(tier.min_value)) <= price <= Decimal(str(tier.max_value)):
            return Decimal(str(tier.platform_fee_percentage))
    logger.warning("No platform fee tier covers price=%s, using default %s%%", price, default)
    return Decimal(str(default))


def ranges_overlap(min_a, max_a, min_b, max_b) -> bool:
    return Decimal(str(min_a)) <= Decimal(str(max_b)) and Decimal(str(min_b)) <= Decimal(str(max_a))


# ── Ratings ─────────────────────────────────────────────────────────────

def apply_rating(rating_total: int, rating_count: int, rating: int):
    """Fold one rating into the aggregate.

    Returns ``(new_total, new_count, new_average)``. The average equals
    ``(old_avg × old_count + rating) / (old_count + 1)`` but is computed from
    the exact integer sum so the result does not depend on arrival order.
    """
    new_total = (rating_total or 0) + rating
    new_count = (rating_count or 0) + 1
    average = (Decimal(new_total) / Decimal(new_count)).quantize(CENT, rounding=ROUND_HALF_UP)
    return new_total, new_count, average


# ── Secretary workload ──────────────────────────────────────────────────

def workload_percentage(companies: int, specialists: int) -> Decimal:
    """max(companies / 50, specialists / 30) × 100, unrounded."""
    by_companies = Decimal(companies or 0) / MAX_COMPANIES
    by_specialists = Decimal(specialists or 0) / MAX_SPECIALISTS
    return max(by_companies, by_specialists) * HUNDRED


def accepting_new_work(workload: Decimal) -> bool:
    return workload < OVERLOAD_THRESHOLD


def is_overloaded(workload: Decimal) -> bool:
    return workload >= OVERLOAD_THRESHOLD


def adjust_counter(value: int, delta: int) -> int:
    """Apply ``delta`` and clamp at zero."""
    return max(0, (value or 0) + delta)


# ── Company compliance ──────────────────────────────────────────────────

def is_compliant(next_annual_return_due, next_agm_date, today) -> bool:
    """Compliant unless a known due date is strictly before ``today``."""
    if next_annual_return_due and next_annual_return_due < today:
        return False
    if next_agm_date and next_agm_date < today:
        return False
    return True


def next_compliance_due(next_annual_return_due, next_agm_date):
    """Earlier of the two due dates, or None when neither is set."""
    dates = [d for d in (next_annual_return_due, next_agm_date) if d]
    return min(dates) if dates else None


# ── Elapsed time ────────────────────────────────────────────────────────

def whole_years_since(start, now) -> int:
    """Whole years between two instants using a 365.25-day year."""
    start_dt = _as_utc_datetime(start)
    now_dt = _as_utc_datetime(now)
    days = (now_dt - start_dt).total_seconds() / 86400
    return max(0, int(days // DAYS_PER_YEAR))


def _as_utc_datetime(value):
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")
