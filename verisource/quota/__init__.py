"""
Quota Module

Plan-tiered daily analysis limits with an atomic, storage-level increment.

Usage:
    ledger = QuotaLedger(db)

    decision = ledger.check(user_id, PlanTier.FREE)
    if isinstance(decision, Denied):
        raise QuotaExceeded(decision.current, decision.limit)
    ...
    if not ledger.commit(user_id, PlanTier.FREE):
        # lost the race to a concurrent request
        ...
"""

from .ledger import (
    QuotaLedger,
    Admitted,
    Denied,
    QuotaStatus,
    PlanLimits,
    PLAN_LIMITS,
    UNLIMITED_DAILY_ANALYSES,
    resolve_plan,
    limits_for,
    daily_limit,
    is_premium,
)

__all__ = [
    "QuotaLedger",
    "Admitted",
    "Denied",
    "QuotaStatus",
    "PlanLimits",
    "PLAN_LIMITS",
    "UNLIMITED_DAILY_ANALYSES",
    "resolve_plan",
    "limits_for",
    "daily_limit",
    "is_premium",
]
