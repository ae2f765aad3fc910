"""
UAT Tracker
Flask Application Factory.

Usage:
    from uat_tracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from uat_tracker.auth import init_auth
from uat_tracker.config import config
from uat_tracker.core.exceptions import AuthenticationRequired, ImportFormatError
from uat_tracker.middleware.logging_config import configure_logging
from uat_tracker.middleware.timing import init_request_timing
from uat_tracker.models import db
from uat_tracker.utils.errors import E, api_error

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


def _register_error_handlers(app):
    @app.errorhandler(AuthenticationRequired)
    def _auth_required(e):
        return api_error(E.AUTH_REQUIRED, str(e))

    @app.errorhandler(ImportFormatError)
    def _import_format_error(e):
        return api_error(E.VALIDATION_INVALID, e.message, status=e.status_code)

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500


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
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing (before auth so 401s are timed too) ───────────────
    init_request_timing(app)

    # ── Authentication ───────────────────────────────────────────────────
    init_auth(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from uat_tracker.models import uat as _uat_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if (app.config.get("SQLALCHEMY_DATABASE_URI") or "").startswith("sqlite:///") and not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from uat_tracker.blueprints.export_bp import export_bp
    from uat_tracker.blueprints.health_bp import health_bp
    from uat_tracker.blueprints.uat_bp import uat_bp

    app.register_blueprint(uat_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    return app
