"""
User Management API

Provides the caller's quota/usage view and admin user management.

Endpoints:
- GET /api/usage - Current user's quota status and today's usage
- GET /api/admin/users - List profiles (admin only)
- GET /api/admin/users/{user_id} - Get profile by ID (admin only)
- PATCH /api/admin/users/{user_id}/plan - Change plan (admin only)
- PATCH /api/admin/users/{user_id}/role - Change role (admin only)
- PATCH /api/admin/users/{user_id}/status - Suspend / reinstate (admin only)
- POST /api/admin/users/{user_id}/reset-usage - Reset daily count (admin only)

Every admin mutation writes an audit entry in the same transaction.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from verisource.audit import AuditRecorder, ClientMetadata, UsageRecorder
from verisource.auth import get_client_metadata, get_current_profile, get_profile, require_admin
from verisource.database import (
    PlanTier,
    Profile,
    SubscriptionEventType,
    UserRole,
    get_db,
    get_session_factory,
)
from verisource.quota import QuotaLedger, daily_limit

logger = logging.getLogger(__name__)

usage_router = APIRouter(prefix="/api/usage", tags=["Usage"])

router = APIRouter(
    prefix="/api/admin/users",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],  # All endpoints require admin
)


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class ProfileResponse(BaseModel):
    """Profile as seen by admins."""
    id: UUID
    email: str
    name: Optional[str]
    country: Optional[str]
    plan: str
    role: str
    analysis_count: int
    daily_limit: int
    is_suspended: bool
    suspension_reason: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            email=profile.email,
            name=profile.name,
            country=profile.country,
            plan=profile.plan.value,
            role=profile.role.value,
            analysis_count=profile.analysis_count,
            daily_limit=daily_limit(profile.plan),
            is_suspended=profile.is_suspended,
            suspension_reason=profile.suspension_reason,
            created_at=profile.created_at,
        )


class ProfileListResponse(BaseModel):
    """Paginated profile list response."""
    users: List[ProfileResponse]
    total: int
    page: int
    page_size: int


class UsageResponse(BaseModel):
    plan: str
    current_usage: int
    limit: int
    remaining: int
    requests_today: int
    failed_requests_today: int


class UpdatePlanRequest(BaseModel):
    plan: str = Field(..., pattern="^(free|pro|enterprise)$")


class UpdateRoleRequest(BaseModel):
    role: str = Field(..., pattern="^(user|admin)$")


class UpdateStatusRequest(BaseModel):
    suspended: bool
    reason: Optional[str] = Field(None, max_length=500)


# =============================================================================
# HELPERS
# =============================================================================

def _get_profile_or_404(db: Session, user_id: UUID) -> Profile:
    profile = get_profile(db, user_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return profile


# =============================================================================
# USAGE ENDPOINT
# =============================================================================

@usage_router.get("", response_model=UsageResponse)
def get_my_usage(
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Quota status and today's request counts for the caller."""
    quota = QuotaLedger(db).status(current_profile.id)

    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    summary = UsageRecorder(get_session_factory()).summarize(current_profile.id, since=today)

    return UsageResponse(
        plan=quota.plan.value,
        current_usage=quota.current_usage,
        limit=quota.limit,
        remaining=quota.remaining,
        requests_today=summary.total_requests,
        failed_requests_today=summary.failed_requests,
    )


# =============================================================================
# ADMIN USER MANAGEMENT ENDPOINTS
# =============================================================================

@router.get("", response_model=ProfileListResponse)
def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    plan: Optional[str] = Query(None, pattern="^(free|pro|enterprise)$"),
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
):
    """
    List all profiles (admin only).

    Supports filtering by plan and searching by email/name.
    """
    query = db.query(Profile)

    if plan:
        query = query.filter(Profile.plan == PlanTier(plan))

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Profile.email.ilike(search_term)) |
            (Profile.name.ilike(search_term))
        )

    total = query.count()
    profiles = (
        query.order_by(Profile.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return ProfileListResponse(
        users=[ProfileResponse.from_profile(p) for p in profiles],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{user_id}", response_model=ProfileResponse)
def get_user(user_id: UUID, db: Session = Depends(get_db)):
    """Get a profile by ID (admin only)."""
    return ProfileResponse.from_profile(_get_profile_or_404(db, user_id))


@router.patch("/{user_id}/plan", response_model=ProfileResponse)
def change_plan(
    user_id: UUID,
    request: UpdatePlanRequest,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """
    Change a user's plan (admin only).

    Records a subscription_updated event and an audit entry.
    """
    profile = _get_profile_or_404(db, user_id)
    old_plan = profile.plan
    new_plan = PlanTier(request.plan)

    if old_plan == new_plan:
        return ProfileResponse.from_profile(profile)

    profile.plan = new_plan

    recorder = AuditRecorder(db)
    recorder.record_subscription_event(
        user_id=profile.id,
        event_type=SubscriptionEventType.SUBSCRIPTION_UPDATED,
        previous_plan=old_plan,
        new_plan=new_plan,
        metadata={"changed_by": str(admin.id)},
    )
    recorder.record(
        actor_id=admin.id,
        action_type="change_plan",
        target_type="user",
        target_id=str(profile.id),
        old_values={"plan": old_plan.value},
        new_values={"plan": new_plan.value},
        client=client,
    )
    db.refresh(profile)

    logger.info(f"Admin {admin.email} changed plan of {profile.email}: {old_plan.value} -> {new_plan.value}")
    return ProfileResponse.from_profile(profile)


@router.patch("/{user_id}/role", response_model=ProfileResponse)
def update_user_role(
    user_id: UUID,
    request: UpdateRoleRequest,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """
    Update a user's role (admin only).

    Cannot demote yourself.
    """
    profile = _get_profile_or_404(db, user_id)

    if profile.id == admin.id and request.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot demote yourself",
        )

    old_role = profile.role
    profile.role = UserRole(request.role)
    AuditRecorder(db).record(
        actor_id=admin.id,
        action_type="update_role",
        target_type="user",
        target_id=str(profile.id),
        old_values={"role": old_role.value},
        new_values={"role": profile.role.value},
        client=client,
    )
    db.refresh(profile)

    logger.info(f"Admin {admin.email} changed role of {profile.email}: {old_role.value} -> {profile.role.value}")
    return ProfileResponse.from_profile(profile)


@router.patch("/{user_id}/status", response_model=ProfileResponse)
def update_user_status(
    user_id: UUID,
    request: UpdateStatusRequest,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """
    Suspend or reinstate a user (admin only).

    Suspended users are refused analysis. Cannot suspend yourself.
    """
    profile = _get_profile_or_404(db, user_id)

    if profile.id == admin.id and request.suspended:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot suspend yourself",
        )

    old_values = {"is_suspended": profile.is_suspended, "suspension_reason": profile.suspension_reason}
    profile.is_suspended = request.suspended
    profile.suspension_reason = request.reason if request.suspended else None

    AuditRecorder(db).record(
        actor_id=admin.id,
        action_type="disable_user" if request.suspended else "enable_user",
        target_type="user",
        target_id=str(profile.id),
        old_values=old_values,
        new_values={"is_suspended": profile.is_suspended, "suspension_reason": profile.suspension_reason},
        client=client,
    )
    db.refresh(profile)

    logger.info(f"Admin {admin.email} set suspended={request.suspended} for {profile.email}")
    return ProfileResponse.from_profile(profile)


@router.post("/{user_id}/reset-usage", response_model=ProfileResponse)
def reset_usage(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """Reset a user's daily analysis count to zero (admin only)."""
    profile = _get_profile_or_404(db, user_id)

    previous = QuotaLedger(db).reset(profile.id)
    AuditRecorder(db).record(
        actor_id=admin.id,
        action_type="reset_analysis_count",
        target_type="user",
        target_id=str(profile.id),
        old_values={"analysis_count": previous},
        new_values={"analysis_count": 0},
        client=client,
    )
    db.refresh(profile)

    return ProfileResponse.from_profile(profile)
