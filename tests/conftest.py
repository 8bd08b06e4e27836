"""Pytest shared fixtures: environment, network guard rails, fake Keycloak."""
import json
import os
import pathlib
import sys
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("API_AUTH_ENABLED", "false")
os.environ.setdefault("KEYCLOAK_URL", "http://kc.test")
os.environ.setdefault("KEYCLOAK_REALM", "demo")

import pytest
import requests

from app.config.settings import AppConfig, KeycloakOptions
from app.core.keycloak import KeycloakClient, UserService

KC_URL = "http://kc.test"
REALM = "demo"


# ─────────────────────────────────────────────────────────────────────────────
# Fake Keycloak Admin API
# ─────────────────────────────────────────────────────────────────────────────
class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, headers: Optional[dict] = None, url: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload) if payload is not None else ""
        self.headers = headers or {}
        self.url = url

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeKeycloak:
    """In-memory stand-in for the token endpoint and the users admin API.

    Every request is recorded in ``calls`` as (method, path, kwargs).
    Status overrides (create_status, reset_status, ...) let tests inject failures.
    """

    def __init__(self, base_url: str = KC_URL, realm: str = REALM):
        self.base_url = base_url
        self.realm = realm
        self.users: dict[str, dict] = {}
        self.calls: list[tuple[str, str, dict]] = []
        self.token_status = 200
        self.expires_in = 300
        self.tokens_issued = 0
        self.create_status: Optional[int] = None
        self.create_inserts_on_conflict = True
        self.reset_status: Optional[int] = None
        self.reset_body: Optional[dict] = None
        self.update_status: Optional[int] = None
        self.lookup_status: Optional[int] = None
        self.passwords: dict[str, dict] = {}
        self.required_actions: dict[str, list] = {}
        self._next_id = 1

    # Helpers ---------------------------------------------------------------
    def add_user(self, username: str, **fields) -> str:
        user_id = f"uid-{self._next_id}"
        self._next_id += 1
        self.users[username] = {"id": user_id, "username": username, **fields}
        return user_id

    def calls_to(self, method: str, suffix: str = "") -> list:
        return [c for c in self.calls if c[0] == method and c[1].endswith(suffix)]

    @property
    def users_path(self) -> str:
        return f"/admin/realms/{self.realm}/users"

    def _path(self, url: str) -> str:
        assert url.startswith(self.base_url), f"Unexpected URL {url}"
        return url[len(self.base_url):]

    # requests-compatible entry points --------------------------------------
    def post(self, url, data=None, json=None, headers=None, timeout=None, **kwargs):
        path = self._path(url)
        self.calls.append(("POST", path, {"data": data, "json": json, "headers": headers}))
        if path.endswith("/protocol/openid-connect/token"):
            if self.token_status != 200:
                return FakeResponse(self.token_status, {"error": "invalid_grant"}, url=url)
            self.tokens_issued += 1
            return FakeResponse(200, {
                "access_token": f"token-{self.tokens_issued}",
                "expires_in": self.expires_in,
            }, url=url)
        if path == self.users_path:
            username = json["username"]
            if self.create_status is not None:
                if self.create_status == 409 and self.create_inserts_on_conflict:
                    self.add_user(username, email=json.get("email"))
                return FakeResponse(self.create_status, {"errorMessage": "create failed"}, url=url)
            if username in self.users:
                return FakeResponse(409, {"errorMessage": "User exists with same username"}, url=url)
            user_id = self.add_user(username, **{k: v for k, v in json.items() if k != "username"})
            return FakeResponse(201, None, headers={"Location": f"{url}/{user_id}"}, url=url)
        raise RuntimeError(f"Unexpected POST {url}")

    def get(self, url, params=None, headers=None, timeout=None, **kwargs):
        path = self._path(url)
        self.calls.append(("GET", path, {"params": params, "headers": headers}))
        if path == self.users_path:
            if self.lookup_status is not None:
                return FakeResponse(self.lookup_status, {"error": "lookup failed"}, url=url)
            user = self.users.get((params or {}).get("username"))
            return FakeResponse(200, [user] if user else [], url=url)
        raise RuntimeError(f"Unexpected GET {url}")

    def put(self, url, json=None, headers=None, timeout=None, **kwargs):
        path = self._path(url)
        self.calls.append(("PUT", path, {"json": json, "headers": headers}))
        if path.endswith("/reset-password"):
            if self.reset_status is not None:
                return FakeResponse(self.reset_status, self.reset_body, url=url)
            user_id = path.split("/")[-2]
            self.passwords[user_id] = json
            return FakeResponse(204, None, url=url)
        if path.startswith(f"{self.users_path}/"):
            if self.update_status is not None:
                return FakeResponse(self.update_status, {"error": "update failed"}, url=url)
            user_id = path.rsplit("/", 1)[-1]
            self.required_actions[user_id] = json["requiredActions"]
            return FakeResponse(204, None, url=url)
        raise RuntimeError(f"Unexpected PUT {url}")


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Prevent unit tests from reaching a real Keycloak."""
    def _blocked(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {url}")

    monkeypatch.setattr(requests, "get", _blocked)
    monkeypatch.setattr(requests, "post", _blocked)
    monkeypatch.setattr(requests, "put", _blocked)


@pytest.fixture()
def keycloak(monkeypatch):
    """Fake Keycloak wired into requests.get/post/put."""
    fake = FakeKeycloak()
    monkeypatch.setattr(requests, "get", fake.get)
    monkeypatch.setattr(requests, "post", fake.post)
    monkeypatch.setattr(requests, "put", fake.put)
    return fake


@pytest.fixture()
def kc_client():
    return KeycloakClient(KC_URL, "admin", "admin-pass")


@pytest.fixture()
def user_service(kc_client):
    return UserService(kc_client, REALM)


def make_config(**overrides) -> AppConfig:
    keycloak_overrides = overrides.pop("keycloak", {})
    options = dict(
        base_url=KC_URL,
        admin_realm="master",
        realm=REALM,
        admin_client_id="admin-cli",
        admin_username="admin",
        admin_password="admin-pass",
        username_field="email",
        required_actions=frozenset({"UPDATE_PASSWORD"}),
    )
    options.update(keycloak_overrides)
    base = dict(
        demo_mode=True,
        keycloak=KeycloakOptions(**options),
        continue_on_error=False,
        api_auth_enabled=False,
        api_required_role="iam-operator",
        api_audience="",
    )
    base.update(overrides)
    return AppConfig(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_factory():
    from app.flask_app import create_app

    def _build(people=None, **overrides):
        flask_app = create_app(make_config(**overrides))
        flask_app.config.update(TESTING=True)
        if people is not None:
            flask_app.config["PEOPLE"] = people
        return flask_app

    return _build


@pytest.fixture()
def client(app_factory):
    with app_factory().test_client() as test_client:
        yield test_client
