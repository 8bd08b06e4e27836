"""Error handlers for the application.

Keycloak failures surface as JSON with the exception name, so callers can tell
a rejected password from an unreachable identity provider.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from app.core.keycloak import (
    KeycloakAPIError,
    KeycloakError,
    PasswordRejected,
    TransportError,
)

logger = logging.getLogger(__name__)


def status_for(error: KeycloakError) -> int:
    """HTTP status returned to the caller for a Keycloak failure."""
    if isinstance(error, PasswordRejected):
        return 422
    if isinstance(error, TransportError):
        return 503
    return 502


def keycloak_error_body(error: KeycloakError) -> dict:
    body = {
        "error": type(error).__name__,
        "message": str(error),
        "status": error.status_code if isinstance(error, KeycloakAPIError) else None,
    }
    if isinstance(error, PasswordRejected):
        body["reason"] = error.reason
    return body


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(KeycloakError)
    def keycloak_error(error):
        """Map the Keycloak exception taxonomy to JSON responses."""
        status = status_for(error)
        logger.error(f"Keycloak failure ({type(error).__name__}): {error}")
        return jsonify(keycloak_error_body(error)), status

    @app.errorhandler(HTTPException)
    def http_error(error):
        """Render werkzeug HTTP errors (404, 405, ...) as JSON."""
        return jsonify({"error": error.name, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
