"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client with admin token caching and auto-refresh
- users.py: User provisioning (lookup/create, temporary password, required actions)
- exceptions.py: Typed exceptions for error handling

Usage:
    from app.core.keycloak import KeycloakClient, UserService

    client = KeycloakClient("http://keycloak:8080", "admin", "password")
    users = UserService(client, "demo")
    result = users.provision_user("alice@example.com", "Alice", "Doe", "alice@example.com")
"""
from .client import (
    AdminSession,
    KeycloakClient,
    REQUEST_TIMEOUT,
    TOKEN_EXPIRY_BUFFER,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    AuthError,
    ProvisionError,
    PasswordRejected,
    UpdateError,
    TransportError,
)
from .users import (
    ProvisionResult,
    UserService,
)

__all__ = [
    # Client
    "AdminSession",
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "TOKEN_EXPIRY_BUFFER",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "AuthError",
    "ProvisionError",
    "PasswordRejected",
    "UpdateError",
    "TransportError",

    # Services
    "ProvisionResult",
    "UserService",
]
