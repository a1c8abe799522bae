"""
JWT Token Validation for Supabase Auth

Validates JWTs issued by Supabase using the project's JWT secret or JWKS.
Supports both symmetric (HS256) and asymmetric (ES256, RS256) algorithms.
"""

import logging
from typing import Optional, Dict, Any
from functools import lru_cache

import jwt
from jwt import PyJWTError, PyJWKClient

from verisource.auth.config import AuthConfig, get_auth_config

logger = logging.getLogger(__name__)

# Asymmetric algorithms that require public key (JWKS) verification
ASYMMETRIC_ALGORITHMS = {"RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "PS256", "PS384", "PS512"}


class TokenError(Exception):
    """Token could not be verified."""
    pass


@lru_cache(maxsize=1)
def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """Get cached JWKS client for fetching public keys."""
    return PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)


def get_verification_key(token: str, config: AuthConfig) -> Any:
    """
    Get the appropriate verification key based on algorithm.

    - For symmetric algorithms (HS256): Use the JWT secret directly
    - For asymmetric algorithms (ES256, RS256): Fetch public key from JWKS
    """
    if config.jwt_algorithm not in ASYMMETRIC_ALGORITHMS:
        if not config.supabase_jwt_secret:
            raise TokenError("SUPABASE_JWT_SECRET not configured")
        return config.supabase_jwt_secret

    project_ref = config.supabase_project_ref
    if not project_ref:
        raise TokenError(f"SUPABASE_URL required for {config.jwt_algorithm} algorithm")

    jwks_url = f"https://{project_ref}.supabase.co/auth/v1/.well-known/jwks.json"
    try:
        return get_jwks_client(jwks_url).get_signing_key_from_jwt(token).key
    except PyJWTError as e:
        logger.error(f"Failed to fetch JWKS from {jwks_url}: {e}")
        raise TokenError(f"Failed to fetch public key from Supabase: {e}")


def verify_access_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Verify and decode a Supabase access token.

    Args:
        token: The JWT from the Authorization header
        config: Auth configuration (defaults to the cached environment config)

    Returns:
        Decoded token payload

    Raises:
        TokenError: If token is invalid, expired, or malformed
    """
    config = config or get_auth_config()

    try:
        verification_key = get_verification_key(token, config)
        payload = jwt.decode(
            token,
            verification_key,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidAudienceError:
        raise TokenError("Invalid token audience")
    except jwt.InvalidSignatureError:
        raise TokenError("Invalid token signature")
    except jwt.MissingRequiredClaimError as e:
        raise TokenError(f"Token missing '{e.claim}' claim")
    except jwt.InvalidAlgorithmError:
        raise TokenError(f"Token algorithm does not match server setting {config.jwt_algorithm}")
    except jwt.DecodeError as e:
        raise TokenError(f"Token decode error: {e}")
    except PyJWTError as e:
        raise TokenError(f"Token validation error: {e}")

    if not payload.get("sub"):
        raise TokenError("Token missing 'sub' claim")

    return payload


def extract_identity(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract profile fields from a verified JWT payload.

    Supabase JWT payload structure:
    {
        "sub": "user-uuid",
        "email": "user@example.com",
        "aud": "authenticated",
        "user_metadata": {"full_name": "...", "country": "BD"},
        "exp": 1234567890
    }
    """
    user_metadata = payload.get("user_metadata") or {}

    return {
        "id": payload.get("sub"),
        "email": payload.get("email"),
        "name": user_metadata.get("full_name") or user_metadata.get("name"),
        "country": user_metadata.get("country"),
    }
