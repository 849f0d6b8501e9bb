import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from app.errors import AppError, AuthenticationError
from app.extensions import db, jwt
from app.routes import main_bp
from app.services.auth_service import is_token_revoked
from app.services.claude_service import ClaudeService
from app.services.rate_limiter import RateLimiter
from app.services.storage_service import PUBLIC_PATH
from app.services.weather_service import WeatherService
from models import *

logger = logging.getLogger(__name__)


def configure_logging(app):
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(error):
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        if getattr(error, "retry_after", None):
            response.headers["Retry-After"] = str(error.retry_after)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description, "error_class": type(error).__name__}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Unhandled error: %s", error)
        return jsonify({
            "error": "An error occurred while processing your request",
            "error_class": "InternalError"
        }), 500


def register_jwt_callbacks():
    def auth_failure(message):
        return jsonify(AuthenticationError(message).to_dict()), 401

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return is_token_revoked(jwt_payload)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return auth_failure("Missing bearer token")

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return auth_failure("Invalid token")

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return auth_failure("Token has expired")

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return auth_failure("Token has been revoked")


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    Migrate(app, db)
    jwt.init_app(app)
    register_jwt_callbacks()

    # CORS restricted to the configured origins; preflight handled by Flask-CORS
    CORS(
        app,
        origins=app.config["CORS_ORIGINS"],
        allow_headers=["Authorization", "Content-Type", "X-Client-Info", "apikey"],
        supports_credentials=True,
    )

    # Shared services, one instance per application
    app.extensions["claude_service"] = ClaudeService()
    app.extensions["weather_service"] = WeatherService()
    app.extensions["rate_limiter"] = RateLimiter(
        max_requests=app.config["RATE_LIMIT_MAX_REQUESTS"],
        window_seconds=app.config["RATE_LIMIT_WINDOW_SECONDS"],
    )

    # Serve stored objects
    @app.route(f'/{PUBLIC_PATH}/<path:filename>')
    def stored_object(filename):
        return send_from_directory(os.path.abspath(app.config['UPLOAD_FOLDER']), filename)

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(main_bp)

    return app
