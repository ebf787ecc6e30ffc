"""
Health check blueprint.

Endpoints:
    GET /api/v1/health  — liveness plus a database round-trip
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from marketplace.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    """Report service status; 503 when the database is unreachable."""
    checks = {}
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
        }
        status = 200
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check — database failed: %s", exc)
        checks["database"] = {"status": "error"}
        status = 503

    return jsonify({
        "success": status == 200,
        "data": {"status": "ok" if status == 200 else "degraded", "checks": checks},
    }), status
