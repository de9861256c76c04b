"""
IdeaBox
Flask Application Factory.

Usage:
    from ideabox import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from ideabox.config import config
from ideabox.models import db
from ideabox.middleware.jwt_auth import init_jwt_middleware
from ideabox.middleware.logging_config import configure_logging
from ideabox.middleware.rate_limiter import init_rate_limits
from ideabox.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit - apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + optional bearer identity ────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic / create_all can see them ───────────
    from ideabox.models import auth as _auth_models                  # noqa: F401
    from ideabox.models import idea as _idea_models                  # noqa: F401
    from ideabox.models import notification as _notification_models  # noqa: F401

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from ideabox.blueprints.auth_bp import auth_bp
    from ideabox.blueprints.health_bp import health_bp
    from ideabox.blueprints.idea_bp import idea_bp

    app.register_blueprint(idea_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("create-credential")
    @click.option("--kind", type=click.Choice(["employee", "admin"]), required=True)
    @click.option("--corporate-id", required=True)
    @click.option("--email", required=True)
    @click.option("--role", required=True, help="employee, adminL1, adminL2")
    @click.option("--name", "employee_name", default=None)
    @click.option("--function", "employee_function", default=None)
    @click.option("--location", default=None)
    def create_credential_cmd(kind, corporate_id, email, role,
                              employee_name, employee_function, location):
        """Register an employee or admin who can log in with an OTP."""
        from ideabox.services.credential_service import create_credential
        record = create_credential(
            kind, corporate_id, email, role,
            employee_name=employee_name,
            employee_function=employee_function,
            location=location,
        )
        logger.info("Created %s credential %s", kind, record.corporate_id)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        original = getattr(e, "original_exception", None) or e
        logger.error("500 error: %s", original, exc_info=original)
        return {"error": "Internal server error", "detail": str(original)}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
