"""
Admin Audit Log API

Endpoints:
- POST /api/admin/audit-log - Record an admin action (admin only)
- GET /api/admin/audit-log - List recent audit entries (admin only)

Entries are append-only; there is no update or delete endpoint.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from verisource.audit import AuditRecorder, ClientMetadata
from verisource.auth import get_client_metadata, require_admin
from verisource.database import Profile, get_db

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/admin/audit-log",
    tags=["Admin"],
)


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class AuditLogRequest(BaseModel):
    """Admin action to record."""
    action: str = Field(..., min_length=1, max_length=100)
    target_type: str = Field(..., min_length=1, max_length=50)
    target_id: Optional[str] = Field(None, max_length=255)
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class AuditLogResponse(BaseModel):
    success: bool
    audit_id: UUID


class AuditEntryResponse(BaseModel):
    id: UUID
    admin_user_id: Optional[UUID]
    action_type: str
    target_type: str
    target_id: Optional[str]
    old_values: Optional[Dict[str, Any]]
    new_values: Optional[Dict[str, Any]]
    ip_address: str
    user_agent: str
    success: bool
    error_message: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=AuditLogResponse)
def log_admin_action(
    request: AuditLogRequest,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """
    Record an administrative action performed by the caller.

    A failed write is returned as 500 so the caller knows the action is unaudited.
    """
    entry = AuditRecorder(db).record(
        actor_id=admin.id,
        action_type=request.action,
        target_type=request.target_type,
        target_id=request.target_id,
        old_values=request.old_values,
        new_values=request.new_values,
        metadata=request.metadata,
        client=client,
    )
    return AuditLogResponse(success=True, audit_id=entry.id)


@router.get("", response_model=List[AuditEntryResponse])
def list_audit_entries(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None, max_length=100),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List audit entries, newest first (admin only)."""
    return AuditRecorder(db).list_entries(limit=limit, offset=offset, action_type=action)
