"""
Flask decorators for authentication and authorization.

Protects the bulk endpoint with OAuth 2.0 Bearer Tokens (RFC 6750) issued by
the target Keycloak realm.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, issuer, optional audience validation (RFC 7519)
- JWKS caching for performance (1-hour refresh)
"""

import logging
from functools import wraps
from typing import Optional, Dict, Any

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidSignatureError,
    DecodeError,
)
from flask import request, jsonify, current_app, g

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client for the target realm.

    Keys are cached and refreshed every hour; the kid from the JWT header
    selects the signing key.
    """
    global _jwks_client

    if _jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        logger.info(f"Initializing JWKS client for: {cfg.jwks_url}")
        _jwks_client = PyJWKClient(
            cfg.jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
        )

    return _jwks_client


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate JWT Bearer token (signature, exp, nbf, iss, optional aud).

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.keycloak_issuer,
            audience=cfg.api_audience or None,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iss": True,
                "verify_aud": bool(cfg.api_audience),
                "require": ["exp", "iat"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer (token from wrong Keycloak realm): {e}")
    except InvalidAudienceError as e:
        raise TokenValidationError(f"Invalid audience (token not for this API): {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except Exception as e:
        logger.error(f"JWT validation failed: {e}")
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug(f"JWT validated for: {claims.get('preferred_username') or claims.get('azp')}")
    return claims


def _realm_roles(claims: Dict[str, Any]) -> list:
    return list((claims.get("realm_access") or {}).get("roles") or [])


def _unauthorized(detail: str):
    return jsonify({"error": "Unauthorized", "message": detail}), 401


def require_admin_token(fn):
    """
    Require a valid Bearer token carrying the configured realm role.

    Skipped entirely when api_auth_enabled is false (demo mode default).

    Returns 401 for a missing/invalid token and 403 when the role is missing.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        cfg = current_app.config["APP_CONFIG"]
        if not cfg.api_auth_enabled:
            return fn(*args, **kwargs)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            logger.warning("Bulk request without Bearer token")
            return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'")

        token = auth_header[7:].strip()
        if not token:
            return _unauthorized("Bearer token is empty")

        try:
            claims = validate_jwt_token(token)
        except TokenValidationError as e:
            logger.warning(f"Bulk request JWT validation failed: {e}")
            return _unauthorized(str(e))

        required_role = cfg.api_required_role
        if required_role and required_role not in _realm_roles(claims):
            logger.warning(
                f"Bulk request lacks role '{required_role}' (user={claims.get('preferred_username')})"
            )
            return jsonify({"error": "Forbidden", "message": f"Required role: {required_role}"}), 403

        g.token_claims = claims
        return fn(*args, **kwargs)

    return wrapper
