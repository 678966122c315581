"""
Flask Application Factory - LocalGov Watch ingestion API

Serves the guest refresh flow, the data-status check and the connector
admin endpoints. Connector runs happen on background workers (see
services/job_dispatcher.py), never on the request thread, except for the
synchronous admin triggers.
"""

import atexit
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from models.database import db

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate (will be initialized in create_app)
migrate = Migrate()


def configure_logging(level=None):
    logging.basicConfig(
        level=level or os.environ.get('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Reduce noise from libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)


def _apply_database_settings(app):
    uri = app.config.get('SQLALCHEMY_DATABASE_URI')
    if not uri:
        raise RuntimeError(
            "DATABASE_URL is not set. Point it at PostgreSQL (or sqlite for local use)."
        )
    # Pool sizing only applies to server databases
    if uri.startswith('sqlite'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {}


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    _apply_database_settings(app)

    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type", "X-Request-ID", "X-Guest-Session", "X-Admin-Secret"],
         expose_headers=["X-Request-ID", "Retry-After"],
         supports_credentials=False,
         send_wildcard=True)

    # === API MIDDLEWARE ===
    from api.middleware import (
        setup_error_handlers,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    setup_error_handlers(app)

    # Initialize SQLAlchemy
    db.init_app(app)

    # Initialize Flask-Migrate for database migrations
    migrate.init_app(app, db)

    # Request throttling in front of the durable admission rules
    from utils.rate_limiter import init_limiter
    init_limiter(app)

    with app.app_context():
        # Import all models before create_all to ensure tables are created
        import models  # noqa: F401

        env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
        is_prod = env in {"prod", "production"}
        allow_create = app.config.get("TESTING") or not is_prod
        if allow_create:
            db.create_all()
            logger.info("database_initialized create_all=true")
        else:
            logger.info("database_ready create_all=false (run migrations)")

    # Background job dispatch for guest refreshes
    from services.job_dispatcher import get_dispatcher
    dispatcher = get_dispatcher(app)
    atexit.register(dispatcher.shutdown, False)

    # Register routes
    from routes.refresh import refresh_bp
    app.register_blueprint(refresh_bp, url_prefix='/api')

    from routes.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin/connectors')

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    configure_logging()
    app = create_app()
    app.run(debug=app.config.get("DEBUG", False), host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))


if __name__ == "__main__":
    run_app()
