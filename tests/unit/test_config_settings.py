import os

import pytest

from app.config import settings
from app.config.settings import KeycloakOptions, _get_or_generate, load_settings

ENV_VARS = [
    "DEMO_MODE",
    "KEYCLOAK_URL",
    "KEYCLOAK_ADMIN_REALM",
    "KEYCLOAK_REALM",
    "KEYCLOAK_ADMIN_CLIENT_ID",
    "KEYCLOAK_ADMIN",
    "KEYCLOAK_ADMIN_PASSWORD",
    "BULK_USERNAME_FIELD",
    "BULK_REQUIRED_ACTIONS",
    "BULK_CONTINUE_ON_ERROR",
    "API_AUTH_ENABLED",
    "API_REQUIRED_ROLE",
]


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    return tmp_path


def test_demo_mode_uses_defaults(clean_env, monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")

    cfg = load_settings()

    assert cfg.demo_mode is True
    assert cfg.keycloak == KeycloakOptions(
        base_url="http://127.0.0.1:8080",
        admin_password="admin",
    )
    assert cfg.keycloak.required_actions == frozenset({"UPDATE_PASSWORD"})
    assert cfg.api_auth_enabled is False


def test_production_requires_keycloak_url(clean_env, monkeypatch):
    monkeypatch.setenv("KEYCLOAK_ADMIN", "admin")
    monkeypatch.setenv("KEYCLOAK_ADMIN_PASSWORD", "pwd")

    with pytest.raises(RuntimeError):
        load_settings()


def test_production_requires_admin_password(clean_env, monkeypatch):
    monkeypatch.setenv("KEYCLOAK_URL", "https://kc.example.com")
    monkeypatch.setenv("KEYCLOAK_ADMIN", "admin")

    with pytest.raises(RuntimeError):
        load_settings()


def test_production_settings_from_env(clean_env, monkeypatch):
    monkeypatch.setenv("KEYCLOAK_URL", "https://kc.example.com/")
    monkeypatch.setenv("KEYCLOAK_ADMIN_REALM", "master")
    monkeypatch.setenv("KEYCLOAK_REALM", "school")
    monkeypatch.setenv("KEYCLOAK_ADMIN", "ops")
    monkeypatch.setenv("KEYCLOAK_ADMIN_PASSWORD", "pwd")
    monkeypatch.setenv("BULK_USERNAME_FIELD", "nationalId")
    monkeypatch.setenv("BULK_REQUIRED_ACTIONS", "update_password, VERIFY_EMAIL,")
    monkeypatch.setenv("BULK_CONTINUE_ON_ERROR", "true")

    cfg = load_settings()

    assert cfg.keycloak.base_url == "https://kc.example.com"
    assert cfg.keycloak.realm == "school"
    assert cfg.keycloak.admin_username == "ops"
    assert cfg.keycloak.username_field == "nationalId"
    assert cfg.keycloak.required_actions == frozenset({"UPDATE_PASSWORD", "VERIFY_EMAIL"})
    assert cfg.continue_on_error is True
    assert cfg.api_auth_enabled is True
    assert cfg.jwks_url == "https://kc.example.com/realms/school/protocol/openid-connect/certs"


def test_admin_password_read_from_run_secrets(clean_env, monkeypatch):
    (clean_env / "keycloak_admin_password").write_text("file-secret\n")
    monkeypatch.setenv("KEYCLOAK_URL", "https://kc.example.com")
    monkeypatch.setenv("KEYCLOAK_ADMIN", "admin")
    monkeypatch.setenv("KEYCLOAK_ADMIN_PASSWORD", "env-secret")

    cfg = load_settings()

    assert cfg.keycloak.admin_password == "file-secret"


def test_invalid_username_field_rejected(clean_env, monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("BULK_USERNAME_FIELD", "phone")

    with pytest.raises(ValueError):
        load_settings()


def test_options_are_immutable():
    options = KeycloakOptions(base_url="http://kc")
    with pytest.raises(Exception):
        options.realm = "other"


def test_admin_password_hidden_from_repr():
    options = KeycloakOptions(base_url="http://kc", admin_password="s3cret")
    assert "s3cret" not in repr(options)


def test_get_or_generate_uses_demo_default(monkeypatch):
    monkeypatch.delenv("SAMPLE_VAR", raising=False)
    assert _get_or_generate("SAMPLE_VAR", demo_default="demo", demo_mode=True) == "demo"


def test_get_or_generate_optional(monkeypatch):
    monkeypatch.delenv("OPTIONAL_VAR", raising=False)
    assert _get_or_generate("OPTIONAL_VAR", required=False) == ""


def test_get_or_generate_missing_required(monkeypatch):
    monkeypatch.delenv("REQUIRED_VAR", raising=False)
    with pytest.raises(RuntimeError):
        _get_or_generate("REQUIRED_VAR", required=True, demo_mode=False)
