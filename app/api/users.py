"""User onboarding endpoints.

POST /users/bulk-create provisions every person from the in-memory list into
the configured realm and answers {"imported": <count>}.
"""
from __future__ import annotations
import logging
import threading

from flask import Blueprint, current_app, jsonify

from app.api.decorators import require_admin_token
from app.core.bulk_import import bulk_import
from app.core.keycloak import UserService
from app.core.people import PEOPLE

bp = Blueprint("users", __name__)

logger = logging.getLogger(__name__)

# The admin session and the import loop assume a single caller per process
_bulk_lock = threading.Lock()


def get_people():
    """People to onboard (overridable via app.config["PEOPLE"])."""
    return current_app.config.get("PEOPLE", PEOPLE)


@bp.route("/users/bulk-create", methods=["POST"])
@require_admin_token
def bulk_create():
    """Run the bulk import over the configured people."""
    if not _bulk_lock.acquire(blocking=False):
        logger.warning("Bulk import rejected: another import is running")
        return jsonify({"error": "Conflict", "message": "A bulk import is already running"}), 409

    try:
        cfg = current_app.config["APP_CONFIG"]
        options = cfg.keycloak
        service = UserService(current_app.extensions["KEYCLOAK_CLIENT"], options.realm)
        people = get_people()
        logger.info(f"Bulk import started: {len(people)} people into realm '{options.realm}'")
        summary = bulk_import(
            service,
            people,
            username_field=options.username_field,
            required_actions=options.required_actions,
            stop_on_error=not cfg.continue_on_error,
        )
    finally:
        _bulk_lock.release()

    return jsonify(summary.to_dict()), 200
