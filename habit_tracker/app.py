import logging

import click
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ApiError
from .models import db
from .services import CalendarIntegrations, NotificationService
from .storage import DatabaseStorage, MemStorage, seed_demo_data

logger = logging.getLogger(__name__)

migrate = Migrate()


def _build_storage(app):
    backend = app.config["STORAGE_BACKEND"]
    if backend == "database":
        with app.app_context():
            db.create_all()
        return DatabaseStorage(db)
    if backend != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    return MemStorage()


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error: {e}")
        return jsonify({"message": "Internal server error"}), 500


def create_app(config_object=Config, storage=None, integrations=None, notifier=None):
    """Application factory.

    ``storage``, ``integrations`` and ``notifier`` default to instances built
    from the configuration; tests pass their own.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=app.config["LOG_LEVEL"])

    CORS(app, resources={r"/api/*": {
        "origins": app.config["FRONTEND_URL"],
        "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"],
    }})
    db.init_app(app)
    migrate.init_app(app, db)

    if storage is None:
        storage = _build_storage(app)
        if app.config["SEED_DEMO_DATA"]:
            with app.app_context():
                seed_demo_data(storage)
    app.extensions["storage"] = storage
    app.extensions["calendar_integrations"] = integrations or CalendarIntegrations.from_app_config(app.config)
    app.extensions["notification_service"] = notifier or NotificationService.from_app_config(app.config)

    from .Analysis import analysis_bp
    from .Authentication import auth_bp
    from .College import college_bp
    from .Habit import habits_bp
    from .Integrations import integrations_bp
    from .Meeting import meetings_bp
    from .Settings import settings_bp

    # analysis before habits so /habits/analysis is matched first
    app.register_blueprint(analysis_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(habits_bp)
    app.register_blueprint(college_bp)
    app.register_blueprint(meetings_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(integrations_bp)

    register_error_handlers(app)

    @app.cli.command("seed-demo")
    def seed_demo():
        """Fill the configured store with demo habits and classes."""
        seed_demo_data(app.extensions["storage"])
        click.echo("Demo data seeded")

    logger.info(f"App created with {type(storage).__name__}")
    return app

