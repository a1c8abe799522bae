"""
Quota Ledger

Per-user daily analysis counter keyed by plan tier.

The ledger is consulted twice per analysis:
1. check() before the engine is called (cheap read, may race)
2. commit() after the result is ready to persist

commit() is a single conditional UPDATE evaluated by the database, so two
requests that both passed check() cannot push analysis_count past the
plan's daily limit. The losing request sees zero affected rows.

Daily resets happen outside this service.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from verisource.database.models import PlanTier, Profile

logger = logging.getLogger(__name__)

# Enterprise is "unlimited"; a finite sentinel keeps the arithmetic total
UNLIMITED_DAILY_ANALYSES = 1_000_000

MB = 1024 * 1024


@dataclass(frozen=True)
class PlanLimits:
    """Limits and feature flags for a plan tier."""
    daily_limit: int
    max_payload_bytes: int
    premium: bool


PLAN_LIMITS: Dict[PlanTier, PlanLimits] = {
    PlanTier.FREE: PlanLimits(daily_limit=5, max_payload_bytes=10 * MB, premium=False),
    PlanTier.PRO: PlanLimits(daily_limit=200, max_payload_bytes=250 * MB, premium=True),
    PlanTier.ENTERPRISE: PlanLimits(
        daily_limit=UNLIMITED_DAILY_ANALYSES,
        max_payload_bytes=1024 * MB,
        premium=True,
    ),
}


def resolve_plan(plan: Union[PlanTier, str, None]) -> PlanTier:
    """Coerce a plan name to PlanTier. Unknown or missing plans are free."""
    if isinstance(plan, PlanTier):
        return plan
    try:
        return PlanTier(str(plan).lower())
    except ValueError:
        return PlanTier.FREE


def limits_for(plan: Union[PlanTier, str, None]) -> PlanLimits:
    return PLAN_LIMITS[resolve_plan(plan)]


def daily_limit(plan: Union[PlanTier, str, None]) -> int:
    return limits_for(plan).daily_limit


def is_premium(plan: Union[PlanTier, str, None]) -> bool:
    return limits_for(plan).premium


@dataclass(frozen=True)
class Admitted:
    current: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)


@dataclass(frozen=True)
class Denied:
    current: int
    limit: int


@dataclass(frozen=True)
class QuotaStatus:
    """Snapshot of a user's quota for display."""
    user_id: UUID
    plan: PlanTier
    current_usage: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current_usage)

    def to_dict(self) -> dict:
        return {
            "user_id": str(self.user_id),
            "plan": self.plan.value,
            "current_usage": self.current_usage,
            "limit": self.limit,
            "remaining": self.remaining,
        }


class QuotaLedger:
    """
    Quota operations bound to a database session.

    The ledger never commits. Callers own the transaction so the counter
    update can share it with the report insert.
    """

    def __init__(self, db: Session):
        self.db = db

    def _current_count(self, user_id: UUID) -> Optional[int]:
        return self.db.execute(
            select(Profile.analysis_count).where(Profile.id == user_id)
        ).scalar_one_or_none()

    def check(self, user_id: UUID, plan: Union[PlanTier, str, None]) -> Union[Admitted, Denied]:
        """Admission check. Denied when analysis_count >= daily limit."""
        limit = daily_limit(plan)
        current = self._current_count(user_id) or 0

        if current >= limit:
            logger.info(f"Quota denied for {user_id}: {current}/{limit}")
            return Denied(current=current, limit=limit)
        return Admitted(current=current, limit=limit)

    def commit(self, user_id: UUID, plan: Union[PlanTier, str, None]) -> bool:
        """
        Atomically increment analysis_count by one if still below the limit.

        Returns:
            True when this call consumed a unit of quota, False when the
            limit was already reached (a concurrent request won the race)
        """
        limit = daily_limit(plan)
        result = self.db.execute(
            update(Profile)
            .where(Profile.id == user_id, Profile.analysis_count < limit)
            .values(analysis_count=Profile.analysis_count + 1)
            .execution_options(synchronize_session=False)
        )
        committed = result.rowcount == 1
        if not committed:
            logger.info(f"Quota commit rejected for {user_id}: limit {limit} reached")
        return committed

    def status(self, user_id: UUID) -> Optional[QuotaStatus]:
        profile = self.db.get(Profile, user_id)
        if profile is None:
            return None
        return QuotaStatus(
            user_id=profile.id,
            plan=profile.plan,
            current_usage=profile.analysis_count,
            limit=daily_limit(profile.plan),
        )

    def reset(self, user_id: UUID) -> int:
        """
        Set analysis_count back to zero.

        Returns:
            The count before the reset
        """
        previous = self._current_count(user_id)
        if previous is None:
            raise LookupError(f"Profile {user_id} not found")

        self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(analysis_count=0)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Quota reset for {user_id} (was {previous})")
        return previous
