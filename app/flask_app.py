"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints and configuration.
"""
from __future__ import annotations
import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from app.config import AppConfig, load_settings
from app.core.keycloak import KeycloakClient


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: AppConfig | None = None) -> Flask:
    """Create and configure Flask application."""
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    _configure_logging(app)

    # Shared admin session: one token cache per process
    app.extensions["KEYCLOAK_CLIENT"] = KeycloakClient.from_options(cfg.keycloak)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    from app.api import errors, health, users

    app.register_blueprint(health.bp)
    app.register_blueprint(users.bp)

    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Bulk onboarding registered at POST /users/bulk-create (realm={cfg.keycloak.realm})")
    if not cfg.api_auth_enabled:
        print("[flask_app] WARNING: API authentication disabled - do not expose this endpoint")

    return app


def _configure_logging(app: Flask) -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
