"""
Audit Recorder

Appends immutable records of administrative actions and subscription
events. There is no update or delete API.

The recorder performs no authorization; callers decide who may write.
A failed audit write raises AuditWriteFailure so the caller can surface it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from verisource.database.models import (
    AdminAuditLog,
    PlanTier,
    SubscriptionEvent,
    SubscriptionEventType,
)
from verisource.errors import AuditWriteFailure

logger = logging.getLogger(__name__)

DEFAULT_IP_ADDRESS = "127.0.0.1"
DEFAULT_USER_AGENT = "Unknown"


@dataclass(frozen=True)
class ClientMetadata:
    """Caller network details captured with each audit entry."""
    ip_address: str = DEFAULT_IP_ADDRESS
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        peer_host: Optional[str] = None,
    ) -> "ClientMetadata":
        """
        Resolve client IP and user-agent.

        IP priority: first X-Forwarded-For hop, X-Real-IP, socket peer,
        then the 127.0.0.1 sentinel.
        """
        forwarded = headers.get("x-forwarded-for", "")
        ip_address = (
            forwarded.split(",")[0].strip()
            or headers.get("x-real-ip", "").strip()
            or peer_host
            or DEFAULT_IP_ADDRESS
        )
        return cls(
            ip_address=ip_address,
            user_agent=headers.get("user-agent") or DEFAULT_USER_AGENT,
        )


class AuditRecorder:
    """
    Append-only writer for admin_audit_logs and subscription_events.

    Usage:
        recorder = AuditRecorder(db)
        entry = recorder.record(
            actor_id=admin.id,
            action_type="change_plan",
            target_type="user",
            target_id=str(user.id),
            old_values={"plan": "free"},
            new_values={"plan": "pro"},
            client=client,
        )
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor_id: Optional[UUID],
        action_type: str,
        target_type: str,
        target_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        client: Optional[ClientMetadata] = None,
        success: bool = True,
        error_message: Optional[str] = None,
        commit: bool = True,
    ) -> AdminAuditLog:
        """
        Append an audit entry.

        Args:
            commit: Commit the session after writing. Pass False to let the
                caller commit the entry together with the change it describes.

        Raises:
            AuditWriteFailure: If the entry could not be written
        """
        client = client or ClientMetadata()
        entry = AdminAuditLog(
            admin_user_id=actor_id,
            action_type=action_type,
            target_type=target_type,
            target_id=target_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            success=success,
            error_message=error_message,
            extra_metadata=metadata or {},
        )

        try:
            self.db.add(entry)
            if commit:
                self.db.commit()
            else:
                self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Audit write failed for {action_type} on {target_type}/{target_id}: {e}")
            raise AuditWriteFailure(f"Could not record {action_type} action") from e

        logger.info(f"Audit: {actor_id} {action_type} {target_type}/{target_id}")
        return entry

    def record_subscription_event(
        self,
        user_id: UUID,
        event_type: SubscriptionEventType,
        previous_plan: Optional[PlanTier] = None,
        new_plan: Optional[PlanTier] = None,
        amount_cents: Optional[int] = None,
        currency: str = "USD",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubscriptionEvent:
        """Append a subscription event. Flushed, not committed."""
        event = SubscriptionEvent(
            user_id=user_id,
            event_type=event_type,
            previous_plan=previous_plan,
            new_plan=new_plan,
            amount_cents=amount_cents,
            currency=currency,
            extra_metadata=metadata or {},
        )
        try:
            self.db.add(event)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Subscription event write failed for {user_id}: {e}")
            raise AuditWriteFailure(f"Could not record {event_type.value} event") from e
        return event

    def list_entries(
        self,
        limit: int = 50,
        offset: int = 0,
        action_type: Optional[str] = None,
        actor_id: Optional[UUID] = None,
    ) -> List[AdminAuditLog]:
        """Newest entries first."""
        query = select(AdminAuditLog)
        if action_type:
            query = query.where(AdminAuditLog.action_type == action_type)
        if actor_id:
            query = query.where(AdminAuditLog.admin_user_id == actor_id)
        query = query.order_by(AdminAuditLog.created_at.desc()).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars())
