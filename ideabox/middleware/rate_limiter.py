"""
Rate limiting configuration.

The Limiter instance is created in ideabox/__init__.py with no default
limits; this module applies limits per blueprint.

Usage:
    from ideabox.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth (OTP request / verify): OTP_RATE_LIMIT, default 5/minute
        - Idea endpoints:              120/minute
        - Health check:                exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    # OTP codes are 4 digits; throttle guessing and mail flooding
    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(app.config.get("OTP_RATE_LIMIT", "5/minute"))(bp)

    bp = app.blueprints.get("ideas")
    if bp:
        limiter.limit("120/minute")(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured - auth: %s, ideas: 120/min",
                    app.config.get("OTP_RATE_LIMIT", "5/minute"))
