"""
Usage Tracking

Per-request usage accounting in api_usage_logs.

Writes are best-effort: a failed usage write is logged and dropped, never
surfaced to the caller of the request being accounted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from verisource.audit.recorder import ClientMetadata
from verisource.database.models import ApiUsageLog

logger = logging.getLogger(__name__)


@dataclass
class UsageRecord:
    """Single request to account for."""
    endpoint: str
    method: str
    status_code: int
    response_time_ms: int
    user_id: Optional[UUID] = None
    client: ClientMetadata = field(default_factory=ClientMetadata)
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status_code < 400


@dataclass
class UsageSummary:
    """Aggregate usage for one user."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_response_time_ms: float = 0.0

    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        if self.total_requests == 0:
            return 0
        return (self.successful_requests / self.total_requests) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "avg_response_time_ms": round(self.avg_response_time_ms, 1),
            "success_rate": round(self.success_rate(), 1),
        }


class UsageRecorder:
    """
    Writes usage rows in their own short-lived session.

    Usage:
        usage = UsageRecorder(get_session_factory())
        usage.record(UsageRecord(endpoint="/api/analyze-content", method="POST",
                                 status_code=200, response_time_ms=840))
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(self, record: UsageRecord) -> bool:
        """Append a usage row. Returns False (and logs) if the write failed."""
        db = self.session_factory()
        try:
            db.add(ApiUsageLog(
                user_id=record.user_id,
                endpoint=record.endpoint,
                method=record.method,
                status_code=record.status_code,
                response_time_ms=record.response_time_ms,
                ip_address=record.client.ip_address,
                user_agent=record.client.user_agent,
                error_message=record.error_message,
                extra_metadata=record.metadata,
            ))
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Usage log write failed for {record.method} {record.endpoint}: {e}")
            return False
        finally:
            db.close()

    def summarize(self, user_id: UUID, since: Optional[datetime] = None) -> UsageSummary:
        """Aggregate a user's requests, optionally from a point in time."""
        db = self.session_factory()
        try:
            query = select(
                func.count(ApiUsageLog.id),
                func.sum(case((ApiUsageLog.status_code < 400, 1), else_=0)),
                func.avg(ApiUsageLog.response_time_ms),
            ).where(ApiUsageLog.user_id == user_id)
            if since is not None:
                query = query.where(ApiUsageLog.created_at >= since)

            total, successful, avg_ms = db.execute(query).one()
        finally:
            db.close()

        total = total or 0
        successful = successful or 0
        return UsageSummary(
            total_requests=total,
            successful_requests=successful,
            failed_requests=total - successful,
            avg_response_time_ms=float(avg_ms or 0),
        )
