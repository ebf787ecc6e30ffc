"""
Specialist Marketplace
Flask Application Factory.

Usage:
    from marketplace import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from marketplace.config import config
from marketplace.core.exceptions import AppError
from marketplace.middleware.jwt_auth import init_jwt_middleware
from marketplace.middleware.logging_config import configure_logging
from marketplace.middleware.rate_limiter import init_rate_limits
from marketplace.middleware.security_headers import init_security_headers
from marketplace.middleware.timing import init_request_timing
from marketplace.models import db
from marketplace.services.storage_service import init_storage
from marketplace.utils.errors import E, api_error
from marketplace.utils.helpers import classify_integrity_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)

# Paths whose POST/PUT/PATCH bodies may be multipart uploads
MULTIPART_PREFIXES = (
    "/api/v1/auth/register",
    "/api/v1/media",
    "/api/v1/secretaries",
)


def create_app(config_name=None, storage=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        storage: Optional object storage client replacing the S3 one.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
             supports_credentials=True)
    else:
        CORS(app)
    init_storage(app, storage)

    # ── Security headers / timing / JWT ──────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if "multipart/form-data" in ct and request.path.startswith(MULTIPART_PREFIXES):
                return None
            if request.content_length and "json" not in ct:
                return api_error(E.UNSUPPORTED_MEDIA_TYPE, "Content-Type must be application/json")
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from marketplace.models import catalog as _catalog_models        # noqa: F401
    from marketplace.models import company as _company_models        # noqa: F401
    from marketplace.models import media as _media_models            # noqa: F401
    from marketplace.models import secretary as _secretary_models    # noqa: F401
    from marketplace.models import specialist as _specialist_models  # noqa: F401
    from marketplace.models import user as _user_models              # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from marketplace.blueprints.auth_bp import auth_bp
    from marketplace.blueprints.catalog_bp import service_master_bp, service_offerings_bp
    from marketplace.blueprints.company_bp import companies_bp
    from marketplace.blueprints.health_bp import health_bp
    from marketplace.blueprints.media_bp import media_bp
    from marketplace.blueprints.platform_fee_bp import platform_fees_bp
    from marketplace.blueprints.secretary_bp import secretaries_bp
    from marketplace.blueprints.specialist_bp import specialists_bp
    from marketplace.blueprints.user_bp import users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(specialists_bp)
    app.register_blueprint(media_bp)
    app.register_blueprint(secretaries_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(service_master_bp)
    app.register_blueprint(service_offerings_bp)
    app.register_blueprint(platform_fees_bp)

    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(e):
        db.session.rollback()
        log = logger.warning if e.status_code >= 500 else logger.info
        log("%s %s → %s %s", request.method, request.path, e.status_code, e.code)
        return api_error(e.code, e.message, status=e.status_code, details=e.details or None, exc=e)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        err = classify_integrity_error(e)
        return api_error(err.code, err.message, status=err.status_code, details=err.details or None)

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Resource not found")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def payload_too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": e.description})

    @app.errorhandler(HTTPException)
    def http_error(e):
        return api_error(E.VALIDATION if e.code < 500 else E.INTERNAL,
                         e.description or e.name, status=e.code)

    @app.errorhandler(Exception)
    def server_error(e):
        db.session.rollback()
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=True)
        details = {"error": str(e)} if app.config.get("EXPOSE_ERROR_DETAILS") else None
        return api_error(E.INTERNAL, "Internal server error", status=500, details=details, exc=e)


def _register_cli(app):
    from marketplace.services import seed_service

    @app.cli.command("seed-platform-fees")
    def seed_platform_fees_cmd():
        """Seed the default platform fee tiers."""
        count = seed_service.seed_platform_fees()
        db.session.commit()
        logger.info("Seeded %s new platform fee tiers.", count)

    @app.cli.command("seed-service-master")
    def seed_service_master_cmd():
        """Seed the default service catalog."""
        count = seed_service.seed_service_master()
        db.session.commit()
        logger.info("Seeded %s new catalog services.", count)

    @app.cli.command("seed-users")
    def seed_users_cmd():
        """Seed the super-admin and one demo user per role."""
        count = seed_service.seed_users()
        db.session.commit()
        logger.info("Seeded %s new users.", count)

    @app.cli.command("seed-all")
    def seed_all_cmd():
        """Run every seeder in one transaction."""
        counts = seed_service.seed_all()
        db.session.commit()
        logger.info("Seed complete: %s", counts)

    @app.cli.command("check-db")
    def check_db_cmd():
        """Verify the database connection."""
        db.session.execute(text("SELECT 1"))
        logger.info("Database connection OK")
