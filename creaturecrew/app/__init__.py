"""
app/__init__.py — Flask application factory.

create_app(config_name) builds a configured app. Nothing is initialised at
import time, so tests can create isolated instances and Alembic can import
the models without starting a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name] (+ overrides)
  2. Validate production and invite-code settings (fail fast)
  3. Configure logging
  4. Initialise SQLAlchemy via init_app()
  5. Register the auth, groups and tasks blueprints under /api/v1
  6. Register global error handlers (AppError, marshmallow ValidationError,
     unreachable database, anything else → 500)
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from creaturecrew.config import (
    config_by_name,
    validate_invite_code_config,
    validate_production_config,
)

_MISSING_FIELD_MESSAGE = "Missing data for required field."


def create_app(config_name: str = "development", overrides: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
        overrides:   Extra config values applied last (tests use this to point
                     at a different database).
    """
    app = Flask(__name__)

    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    if config_name == "production":
        validate_production_config(app)
    validate_invite_code_config(app)

    _configure_logging(app)

    from creaturecrew.app.extensions import db
    db.init_app(app)

    # Imported for the side effect of populating db.metadata.
    with app.app_context():
        from creaturecrew.app.models import (  # noqa: F401
            group,
            membership,
            refresh_token,
            task,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("creaturecrew").setLevel(level)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    from creaturecrew.app.routes.auth import auth_bp
    from creaturecrew.app.routes.groups import groups_bp
    from creaturecrew.app.routes.tasks import tasks_bp

    app.register_blueprint(auth_bp,   url_prefix="/api/v1/auth")
    app.register_blueprint(groups_bp, url_prefix="/api/v1/groups")
    # tasks_bp owns both /groups/<id>/tasks... and /tasks/<id>/toggle.
    app.register_blueprint(tasks_bp,  url_prefix="/api/v1")


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    Digs the first (field, message) pair out of marshmallow's nested
    messages, e.g. {"descriptions": {0: ["..."]}} → ("descriptions", "...").
    """
    field = None
    current = messages
    while isinstance(current, dict) and current:
        key, current = next(iter(current.items()))
        if field is None and isinstance(key, str) and key != "_schema":
            field = key
    if isinstance(current, list):
        current = current[0] if current else "Invalid input."
    return field, str(current)


def _register_error_handlers(app: Flask) -> None:
    """
    AppError         → its own code and status
    ValidationError  → MISSING_FIELD / INVALID_FIELD (400), first error only
    OperationalError → STORE_UNAVAILABLE (503)
    Exception        → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from creaturecrew.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        field, message = _first_validation_message(error.messages)
        code = (
            ErrorCode.MISSING_FIELD
            if message == _MISSING_FIELD_MESSAGE
            else ErrorCode.INVALID_FIELD
        )
        return jsonify(AppError(code, message, 400, field=field).to_dict()), 400

    @app.errorhandler(OperationalError)
    def handle_store_unavailable(error: OperationalError):
        app.logger.error("Database unavailable: %s", error.orig)
        from creaturecrew.app.extensions import db
        db.session.rollback()
        return jsonify({
            "error": {
                "code": ErrorCode.STORE_UNAVAILABLE,
                "message": "The data store is temporarily unavailable. Please try again.",
            }
        }), 503

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return error
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500
