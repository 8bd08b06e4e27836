"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

USERNAME_FIELD_CHOICES = ("email", "nationalId")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _env_flag(var_name: str, default: bool) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() == "true"


def _parse_actions(raw: str) -> FrozenSet[str]:
    return frozenset(action.strip().upper() for action in raw.split(",") if action.strip())


@dataclass(frozen=True)
class KeycloakOptions:
    """Where and as whom the bulk import talks to Keycloak."""
    base_url: str
    admin_realm: str = "master"
    realm: str = "demo"
    admin_client_id: str = "admin-cli"
    admin_username: str = "admin"
    admin_password: str = field(default="", repr=False)
    username_field: str = "email"
    required_actions: FrozenSet[str] = frozenset({"UPDATE_PASSWORD"})

    def __post_init__(self):
        if self.username_field not in USERNAME_FIELD_CHOICES:
            raise ValueError(
                f"username_field must be one of {', '.join(USERNAME_FIELD_CHOICES)}, got '{self.username_field}'"
            )


@dataclass
class AppConfig:
    """Application configuration container."""
    demo_mode: bool
    keycloak: KeycloakOptions

    # Bulk import behaviour
    continue_on_error: bool = False

    # Bearer-token protection of the bulk endpoint
    api_auth_enabled: bool = True
    api_required_role: str = "iam-operator"
    api_audience: str = ""

    @property
    def keycloak_issuer(self) -> str:
        """Issuer of tokens presented to the API (target realm)."""
        return os.environ.get(
            "KEYCLOAK_ISSUER",
            f"{self.keycloak.base_url.rstrip('/')}/realms/{self.keycloak.realm}",
        )

    @property
    def jwks_url(self) -> str:
        base = f"{self.keycloak.base_url.rstrip('/')}/realms/{self.keycloak.realm}"
        return f"{base}/protocol/openid-connect/certs"


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_flag("DEMO_MODE", False)

    base_url = _get_or_generate("KEYCLOAK_URL", demo_default="http://127.0.0.1:8080", demo_mode=demo_mode)
    admin_realm = os.environ.get("KEYCLOAK_ADMIN_REALM", "master")
    realm = os.environ.get("KEYCLOAK_REALM", "demo")
    admin_client_id = os.environ.get("KEYCLOAK_ADMIN_CLIENT_ID", "admin-cli")

    admin_username = _get_or_generate("KEYCLOAK_ADMIN", demo_default="admin", demo_mode=demo_mode)
    admin_password = _load_secret_from_file("keycloak_admin_password", "KEYCLOAK_ADMIN_PASSWORD")
    if not admin_password:
        if not demo_mode:
            raise RuntimeError("KEYCLOAK_ADMIN_PASSWORD not found in /run/secrets or environment")
        print("[demo-mode] Using default for KEYCLOAK_ADMIN_PASSWORD")
        admin_password = "admin"

    username_field = os.environ.get("BULK_USERNAME_FIELD", "email").strip()
    required_actions = _parse_actions(os.environ.get("BULK_REQUIRED_ACTIONS", "UPDATE_PASSWORD"))

    keycloak = KeycloakOptions(
        base_url=base_url.rstrip("/"),
        admin_realm=admin_realm,
        realm=realm,
        admin_client_id=admin_client_id,
        admin_username=admin_username,
        admin_password=admin_password,
        username_field=username_field,
        required_actions=required_actions,
    )

    cfg = AppConfig(
        demo_mode=demo_mode,
        keycloak=keycloak,
        continue_on_error=_env_flag("BULK_CONTINUE_ON_ERROR", False),
        api_auth_enabled=_env_flag("API_AUTH_ENABLED", not demo_mode),
        api_required_role=os.environ.get("API_REQUIRED_ROLE", "iam-operator").strip(),
        api_audience=os.environ.get("API_AUDIENCE", "").strip(),
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(
        f"[settings] Mode={mode_label}; realm={realm}; admin_realm={admin_realm}; "
        f"username_field={username_field}; required_actions={sorted(required_actions)}"
    )
    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return cfg
