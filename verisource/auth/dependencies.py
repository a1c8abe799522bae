"""
FastAPI Authentication Dependencies

Provides dependency injection for authentication and authorization.

Two modes:
- resolve_identity: optional auth for the analysis endpoint. An invalid
  credential becomes an anonymous identity when the anonymous-fallback
  policy is on (the default), and is logged as degraded auth.
- get_current_profile / require_admin: strict auth for admin surfaces.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from verisource.audit.recorder import ClientMetadata
from verisource.auth.config import get_auth_config
from verisource.auth.jwt import TokenError, verify_access_token
from verisource.auth.sync import ensure_profile
from verisource.database.models import PlanTier, Profile, UserRole
from verisource.database.session import get_db
from verisource.errors import AuthDegraded

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)

DEV_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


@dataclass
class Identity:
    """Who is making a request. profile is None for anonymous callers."""
    profile: Optional[Profile] = None
    degraded_reason: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.profile is None

    @property
    def user_id(self) -> Optional[UUID]:
        return self.profile.id if self.profile else None

    @property
    def plan(self) -> PlanTier:
        return self.profile.plan if self.profile else PlanTier.FREE

    @property
    def is_suspended(self) -> bool:
        return bool(self.profile and self.profile.is_suspended)


async def resolve_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Resolve the caller, falling back to anonymous on a bad credential.

    Raises:
        HTTPException 401: Only when the anonymous-fallback policy is disabled
    """
    config = get_auth_config()

    if not config.auth_enabled:
        return Identity(profile=_get_dev_profile(db))

    if not credentials:
        return Identity()

    try:
        payload = verify_access_token(credentials.credentials)
        return Identity(profile=ensure_profile(db, payload))
    except TokenError as e:
        if not config.anonymous_fallback_on_auth_failure:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication",
                headers={"WWW-Authenticate": "Bearer"},
            )
        degraded = AuthDegraded(str(e))
        logger.warning(f"{degraded.error}: continuing as anonymous ({degraded.message})")
        return Identity(degraded_reason=degraded.message)


async def get_current_profile(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """
    Get the current authenticated profile.

    Raises:
        HTTPException 401: If not authenticated or the token is invalid
        HTTPException 403: If the account is suspended
    """
    config = get_auth_config()

    if not config.auth_enabled:
        return _get_dev_profile(db)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_access_token(credentials.credentials)
        profile = ensure_profile(db, payload)
    except TokenError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if profile.is_suspended:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account suspended",
        )

    return profile


async def require_admin(
    current_profile: Profile = Depends(get_current_profile),
) -> Profile:
    """
    Require the current profile to be an admin.

    Raises:
        HTTPException 403: If the profile is not an admin
    """
    if not current_profile.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_profile


def get_client_metadata(request: Request) -> ClientMetadata:
    """Client IP and user-agent for audit and usage records."""
    peer_host = request.client.host if request.client else None
    return ClientMetadata.from_headers(request.headers, peer_host=peer_host)


def _get_dev_profile(db: Session) -> Profile:
    """
    Get or create a development profile when auth is disabled.

    This allows local development without Supabase.
    """
    profile = db.get(Profile, DEV_USER_ID)

    if not profile:
        profile = Profile(
            id=DEV_USER_ID,
            email="dev@verisource.local",
            name="Development User",
            plan=PlanTier.PRO,
            analysis_count=0,
            role=UserRole.ADMIN,  # Dev user gets admin for testing
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)

    return profile
