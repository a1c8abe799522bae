"""
Audit and Usage Module

Append-only records of administrative actions, subscription events and
per-request API usage.
"""

from .recorder import (
    AuditRecorder,
    ClientMetadata,
    DEFAULT_IP_ADDRESS,
    DEFAULT_USER_AGENT,
)
from .usage import UsageRecorder, UsageRecord, UsageSummary

__all__ = [
    # Audit
    "AuditRecorder",
    "ClientMetadata",
    "DEFAULT_IP_ADDRESS",
    "DEFAULT_USER_AGENT",
    # Usage
    "UsageRecorder",
    "UsageRecord",
    "UsageSummary",
]
