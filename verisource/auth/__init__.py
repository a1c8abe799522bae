"""
Authentication and Authorization Module

Supabase JWT authentication with local profiles.

- Users sign up/login via Supabase Auth
- JWTs are validated against the Supabase JWT secret (or JWKS)
- Profiles are created locally on first access (free plan)
- Role-based access control (user, admin)

Usage:
    # Optional auth (analysis endpoint, anonymous fallback)
    @router.post("/analyze-content")
    async def analyze(identity: Identity = Depends(resolve_identity)):
        ...

    # Admin-only endpoints
    @router.get("/admin/audit-log")
    def list_audit(admin: Profile = Depends(require_admin)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import TokenError, verify_access_token, extract_identity
from .sync import ensure_profile, get_profile
from .dependencies import (
    Identity,
    resolve_identity,
    get_current_profile,
    require_admin,
    get_client_metadata,
)

__all__ = [
    # Config
    "AuthConfig",
    "get_auth_config",
    # JWT validation
    "TokenError",
    "verify_access_token",
    "extract_identity",
    # Profile sync
    "ensure_profile",
    "get_profile",
    # FastAPI dependencies
    "Identity",
    "resolve_identity",
    "get_current_profile",
    "require_admin",
    "get_client_metadata",
]
