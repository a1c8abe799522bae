"""
Profile Synchronization from Supabase

Creates the local profile row the first time a verified user is seen.
"""

import logging
from typing import Dict, Any, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from verisource.auth.config import get_auth_config
from verisource.auth.jwt import TokenError, extract_identity
from verisource.database.models import PlanTier, Profile, UserRole

logger = logging.getLogger(__name__)


def ensure_profile(db: Session, jwt_payload: Dict[str, Any]) -> Profile:
    """
    Load the profile for a verified token, creating it on first access.

    New profiles start on the free plan with a zero analysis count.
    Emails listed in ADMIN_EMAILS are promoted to admin.

    Args:
        db: Database session
        jwt_payload: Verified JWT payload

    Returns:
        Local Profile record
    """
    identity = extract_identity(jwt_payload)
    try:
        user_id = UUID(str(identity["id"]))
    except ValueError:
        raise TokenError("Token 'sub' claim is not a valid user id")

    profile = db.get(Profile, user_id)
    config = get_auth_config()
    email = identity["email"] or f"{user_id}@users.noreply"

    if profile is None:
        logger.info(f"Creating profile for {email}")

        role = UserRole.USER
        if email in config.admin_emails:
            role = UserRole.ADMIN
            logger.info(f"Auto-promoting {email} to admin")

        profile = Profile(
            id=user_id,
            email=email,
            name=identity.get("name"),
            country=identity.get("country"),
            plan=PlanTier.FREE,
            analysis_count=0,
            role=role,
        )
        db.add(profile)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent first request created it
            db.rollback()
            return db.get(Profile, user_id)
        db.refresh(profile)
        return profile

    if email in config.admin_emails and profile.role != UserRole.ADMIN:
        logger.info(f"Promoting {email} to admin")
        profile.role = UserRole.ADMIN
        db.commit()
        db.refresh(profile)

    return profile


def get_profile(db: Session, user_id: UUID) -> Optional[Profile]:
    """Get profile by ID."""
    return db.get(Profile, user_id)
