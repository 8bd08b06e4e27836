"""Keycloak-specific exceptions for error handling."""
from __future__ import annotations
from typing import Optional


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: Optional[int], message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class AuthError(KeycloakAPIError):
    """Admin token could not be obtained from the token endpoint."""
    pass


class ProvisionError(KeycloakAPIError):
    """User lookup/create failed or left Keycloak in an inconsistent state."""
    pass


class PasswordRejected(KeycloakAPIError):
    """Temporary password refused by the realm password policy.

    Attributes:
        reason: Policy message reported by Keycloak (e.g. minimum length)
    """

    def __init__(self, status_code: Optional[int], message: str, endpoint: str, reason: str = ""):
        super().__init__(status_code, message, endpoint)
        self.reason = reason or message


class UpdateError(KeycloakAPIError):
    """Updating the user representation (required actions) failed."""
    pass


class TransportError(KeycloakError):
    """Network-level failure talking to Keycloak (DNS, refused, timeout)."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")
