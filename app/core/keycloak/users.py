"""Keycloak user provisioning operations."""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .client import KeycloakClient
from .exceptions import (
    AuthError,
    KeycloakAPIError,
    PasswordRejected,
    ProvisionError,
    UpdateError,
)

logger = logging.getLogger(__name__)

# Keycloak reports policy failures as 400 with codes such as
# invalidPasswordMinLengthMessage / invalidPasswordMinDigitsMessage
PASSWORD_POLICY_ERROR_PREFIX = "invalidpassword"


@dataclass(frozen=True)
class ProvisionResult:
    """Outcome of provision_user: created=False means the user already existed."""
    user_id: str
    created: bool


class UserService:
    """Service for provisioning users in a target realm."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize user service.

        Args:
            client: Keycloak client holding the admin session
            realm: Realm users are provisioned into
        """
        self.client = client
        self.realm = realm

    @property
    def users_path(self) -> str:
        return f"/admin/realms/{self.realm}/users"

    def find_user_id(self, username: str) -> Optional[str]:
        """Return the id of the first user matching the exact username, or None.

        Raises:
            ProvisionError: Lookup request failed
        """
        try:
            resp = self.client.get(self.users_path, params={"username": username, "exact": "true"})
        except AuthError:
            raise
        except KeycloakAPIError as exc:
            raise ProvisionError(exc.status_code, exc.message, exc.endpoint) from exc

        try:
            matches = resp.json() or []
            if not matches:
                return None
            return matches[0]["id"]
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            raise ProvisionError(
                resp.status_code, f"Unexpected user search response: {exc}", self.users_path
            ) from exc

    def provision_user(self, username: str, first_name: str, last_name: str, email: str) -> ProvisionResult:
        """Return the existing user's id, or create the user.

        A 409 from the create call means someone else created the user
        between lookup and create; the user is looked up again.

        Raises:
            ProvisionError: Create failed, or the user vanished after a conflict
        """
        existing = self.find_user_id(username)
        if existing:
            logger.info(f"User '{username}' already exists (id={existing})")
            return ProvisionResult(user_id=existing, created=False)

        payload = {
            "username": username,
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "enabled": True,
            "emailVerified": False,
        }
        try:
            resp = self.client.post(self.users_path, json=payload)
        except AuthError:
            raise
        except KeycloakAPIError as exc:
            if exc.status_code != 409:
                raise ProvisionError(exc.status_code, exc.message, exc.endpoint) from exc
            logger.info(f"User '{username}' created concurrently (409), looking it up again")
            user_id = self.find_user_id(username)
            if not user_id:
                raise ProvisionError(409, "user vanished after conflict", exc.endpoint) from exc
            return ProvisionResult(user_id=user_id, created=False)

        user_id = _id_from_location(resp.headers.get("Location")) or self.find_user_id(username)
        if not user_id:
            raise ProvisionError(resp.status_code, "created user not found by username", self.users_path)
        logger.info(f"User '{username}' created (id={user_id})")
        return ProvisionResult(user_id=user_id, created=True)

    def set_temporary_password(self, user_id: str, password: str) -> None:
        """Reset the user's password and flag it as temporary.

        Raises:
            PasswordRejected: Realm password policy refused the value
            KeycloakAPIError: Any other failure
        """
        try:
            self.client.put(
                f"{self.users_path}/{user_id}/reset-password",
                json={"type": "password", "value": password, "temporary": True},
            )
        except AuthError:
            raise
        except KeycloakAPIError as exc:
            reason = _password_policy_reason(exc)
            if reason is None:
                raise
            raise PasswordRejected(exc.status_code, exc.message, exc.endpoint, reason=reason) from exc
        logger.info(f"Temp password set for user id={user_id}")

    def set_required_actions(self, user_id: str, actions: Iterable[str]) -> None:
        """Overwrite the user's required actions with the given set.

        Raises:
            UpdateError: Update request failed
        """
        desired = sorted(set(actions))
        try:
            self.client.put(f"{self.users_path}/{user_id}", json={"requiredActions": desired})
        except AuthError:
            raise
        except KeycloakAPIError as exc:
            raise UpdateError(exc.status_code, exc.message, exc.endpoint) from exc
        logger.info(f"Required actions for user id={user_id} set to {desired}")


def _id_from_location(location: Optional[str]) -> Optional[str]:
    """Extract the user id from a create response Location header."""
    if not location:
        return None
    user_id = location.rstrip("/").rsplit("/", 1)[-1]
    return user_id or None


def _password_policy_reason(exc: KeycloakAPIError) -> Optional[str]:
    """Return the policy message when the error is a password policy violation."""
    if exc.status_code != 400:
        return None
    try:
        body = json.loads(exc.message)
    except (TypeError, ValueError):
        body = {}
    if not isinstance(body, dict):
        body = {}

    code = str(body.get("error") or "")
    description = str(body.get("error_description") or body.get("errorMessage") or "")
    if code.lower().startswith(PASSWORD_POLICY_ERROR_PREFIX):
        return description or code

    text = " ".join([code, description, exc.message]).lower()
    if "password policy" in text or "invalid password" in text:
        return description or code or exc.message
    return None
