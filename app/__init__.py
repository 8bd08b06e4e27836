"""Keycloak bulk onboarding Flask application package.

To use the Flask app:
    from app.flask_app import app

To use the Keycloak client and importer without Flask:
    from app.core.keycloak import KeycloakClient, UserService
    from app.core.bulk_import import bulk_import
"""
# Note: We don't import flask_app by default so the CLI can use
# app.core without loading settings or Flask
