"""Low-level HTTP client for Keycloak Admin API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import requests

from .exceptions import AuthError, KeycloakAPIError, TransportError

REQUEST_TIMEOUT = 5
# Refresh the admin token this many seconds before Keycloak expires it
TOKEN_EXPIRY_BUFFER = 10
DEFAULT_TOKEN_LIFETIME = 60

logger = logging.getLogger(__name__)


@dataclass
class AdminSession:
    """Cached admin bearer token and its absolute expiry."""
    token: str
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) < self.expires_at


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Admin token fetched lazily and reused until it is about to expire
    - Single-flight refresh (one token request even with concurrent callers)
    - Centralized error handling

    Usage:
        client = KeycloakClient("http://keycloak:8080", "admin", "password")
        response = client.get("/admin/realms/demo/users")
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        realm: str = "master",
        client_id: str = "admin-cli",
    ):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g., http://keycloak:8080)
            username: Admin username
            password: Admin password
            realm: Realm the admin account lives in (default: master)
            client_id: Public client used for the password grant
        """
        self.base_url = base_url.rstrip("/")
        self.realm = realm
        self.client_id = client_id
        self._username = username
        self._password = password
        self._session: Optional[AdminSession] = None
        self._lock = threading.Lock()

    @classmethod
    def from_options(cls, options) -> "KeycloakClient":
        """Build a client from KeycloakOptions."""
        return cls(
            options.base_url,
            options.admin_username,
            options.admin_password,
            realm=options.admin_realm,
            client_id=options.admin_client_id,
        )

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/realms/{self.realm}/protocol/openid-connect/token"

    def get_valid_token(self) -> str:
        """Return a bearer token, refreshing it first if absent or expired.

        Raises:
            AuthError: Token endpoint refused the credentials
            TransportError: Token endpoint unreachable
        """
        session = self._session
        if session and session.is_valid():
            return session.token

        with self._lock:
            # Another caller may have refreshed while we waited
            session = self._session
            if session and session.is_valid():
                return session.token
            self._session = self._fetch_admin_token()
            return self._session.token

    def _fetch_admin_token(self) -> AdminSession:
        """Obtain an admin token via direct access grant."""
        url = self.token_url
        data = {
            "grant_type": "password",
            "client_id": self.client_id,
            "username": self._username,
            "password": self._password,
        }
        try:
            resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc

        if resp.status_code != 200:
            raise AuthError(resp.status_code, resp.text, url)

        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        except (ValueError, KeyError, TypeError, AttributeError):
            raise AuthError(resp.status_code, "Malformed token response", url)

        expires_at = datetime.now() + timedelta(seconds=expires_in - TOKEN_EXPIRY_BUFFER)
        logger.info(f"Admin token obtained for '{self._username}' (expires in {expires_in}s)")
        return AdminSession(token=token, expires_at=expires_at)

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Args:
            path: API endpoint path (e.g., "/admin/realms/demo/users")
            params: Query parameters
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
            TransportError: On network error
        """
        return self._request(requests.get, path, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        return self._request(requests.post, path, json=json, **kwargs)

    def put(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication."""
        return self._request(requests.put, path, json=json, **kwargs)

    def _request(self, send, path: str, **kwargs) -> requests.Response:
        token = self.get_valid_token()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token}"

        try:
            resp = send(url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc
        self._handle_error(resp, url)
        return resp

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
