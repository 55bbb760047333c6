"""
Study Aid Companion — Flask Web Application

Turns pasted text, PDFs and screenshots into a summary, a quiz and a
flashcard deck, and serves resumable study tools over a JSON API.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from db_stores import StoreError
from extensions import limiter

logger = logging.getLogger(__name__)


def create_app(test_config: dict[str, Any] | None = None, study_ai=None) -> Flask:
    """Build the app. ``study_ai`` overrides the Gemini client built from config."""
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    if test_config is not None:
        app.config.from_object(config_by_name["testing"])
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config["SECRET_KEY"]

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Register database teardown
    database.init_app(app)

    # Rate limiter (disabled in testing)
    if app.config.get("TESTING"):
        app.config["RATELIMIT_ENABLED"] = False
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    # Auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    register_blueprints(app)

    # Generative AI client, shared by every request
    if study_ai is None and app.config.get("GOOGLE_API_KEY"):
        from study_ai import StudyAI
        study_ai = StudyAI(app.config["GOOGLE_API_KEY"], app.config.get("GEMINI_MODEL", "gemini-2.5-flash"))
    app.extensions["study_ai"] = study_ai
    if study_ai is None:
        logger.warning("GOOGLE_API_KEY is not set: AI routes will answer 503")

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        logger.error("Store failure: %s", e, exc_info=e)
        return jsonify({"error": "Could not load your study data. Please try again."}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
