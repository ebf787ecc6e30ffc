"""
Specialist Marketplace
Blueprint registry helpers shared by every API blueprint.
"""

from flask import request

from marketplace.core.exceptions import ValidationError
from marketplace.utils.errors import api_success


def paginate_query(query, default_limit=20, max_limit=100):
    """Apply page/limit pagination to a SQLAlchemy query.

    Query params:
        page   — 1-based page number (default 1)
        limit  — page size (default 20, capped at max_limit)

    Returns:
        (items_list, meta_dict)
    """
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except (ValueError, TypeError):
        page = 1
    total = query.order_by(None).count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if total else 0,
    }
    return items, meta


def paginated_response(query, serialize=None):
    """Envelope a paginated query: ``{"success", "data": [...], "meta": {...}}``."""
    items, meta = paginate_query(query)
    serialize = serialize or (lambda obj: obj.to_dict())
    return api_success([serialize(i) for i in items], meta=meta)


def request_data() -> dict:
    """JSON body, or form fields for multipart requests."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data
    return request.form.to_dict()


def bool_arg(name):
    """Parse an optional boolean query parameter (None when absent)."""
    value = request.args.get(name)
    if value is None or value == "":
        return None
    lowered = value.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{name} must be a boolean", details={name: "expected true/false"})
