"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in ``marketplace/__init__.py`` with no default limits; this module
applies limits per route category.

Usage:
    from marketplace.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Blueprints sharing the general API quota
API_BLUEPRINTS = (
    "users", "specialists", "media", "secretaries", "companies",
    "service_master", "service_offerings", "platform_fees",
)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth endpoints:  RATELIMIT_AUTH         (credential stuffing guard)
        - Other API:       RATELIMIT_API_DEFAULT  (100 per 15 minutes)
        - Health check:    exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    api_limit = app.config["RATELIMIT_API_DEFAULT"]
    auth_limit = app.config["RATELIMIT_AUTH"]

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(auth_limit)(bp)

    for bp_name in API_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(api_limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — auth: %s, api: %s", auth_limit, api_limit)
