"""
SQLAlchemy Models for VeriSource

Tables:
- profiles: one row per user, carries plan tier and daily analysis count
- analysis_reports: append-only results of completed analyses
- admin_audit_logs: append-only record of administrative mutations
- api_usage_logs: per-request usage accounting
- subscription_events: plan lifecycle events
- app_settings: typed application settings ({kind, value})

Profiles are keyed by the Supabase auth user id.
"""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, Enum, Index, CheckConstraint, JSON, Uuid,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class PlanTier(enum.Enum):
    """Subscription plan, determines quota and premium features."""
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class UserRole(enum.Enum):
    """User role for access control."""
    USER = "user"      # Regular user - analyses only
    ADMIN = "admin"    # Admin - manages users, settings, audit log


class InputType(enum.Enum):
    """Kind of content submitted for analysis."""
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    SCREENSHOT = "screenshot"
    URL = "url"
    TEXT = "text"


class SubscriptionEventType(enum.Enum):
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    TRIAL_STARTED = "trial_started"
    TRIAL_ENDED = "trial_ended"


class SettingKind(enum.Enum):
    """Declared type of an application setting value."""
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"


class SettingCategory(enum.Enum):
    SYSTEM = "system"
    ANALYSIS = "analysis"
    UI = "ui"
    SECURITY = "security"
    ADS = "ads"


# =============================================================================
# PROFILES
# =============================================================================

class Profile(Base):
    """
    Local profile for a Supabase Auth user.

    analysis_count is the daily usage counter. It is only ever incremented
    through the quota ledger's conditional update and reset externally on
    the daily boundary.
    """
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True)

    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    country = Column(String(100))

    plan = Column(Enum(PlanTier), default=PlanTier.FREE, nullable=False)
    analysis_count = Column(Integer, default=0, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)

    # Suspension (admin-managed)
    is_suspended = Column(Boolean, default=False, nullable=False)
    suspension_reason = Column(Text)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("analysis_count >= 0", name="check_analysis_count_non_negative"),
        Index("idx_profile_email", "email"),
        Index("idx_profile_plan", "plan"),
    )

    @property
    def is_admin(self) -> bool:
        """Check if profile has admin role."""
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<Profile {self.email} ({self.plan.value})>"


# =============================================================================
# ANALYSIS REPORTS
# =============================================================================

class AnalysisReport(Base):
    """Result of one accepted, completed analysis. Never updated."""
    __tablename__ = "analysis_reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"))

    input_type = Column(Enum(InputType), nullable=False)
    source_url = Column(Text)
    file_hash = Column(String(128))
    language = Column(String(10), default="en")

    detection_summary = Column(JSON, nullable=False)
    confidence = Column(Integer)
    processing_ms = Column(Integer)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint("confidence >= 0 AND confidence <= 100", name="check_report_confidence"),
        Index("idx_report_user", "user_id"),
        Index("idx_report_created", "created_at"),
    )


# =============================================================================
# AUDIT & USAGE
# =============================================================================

class AdminAuditLog(Base):
    """Append-only record of an administrative mutation."""
    __tablename__ = "admin_audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    admin_user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"))

    action_type = Column(String(100), nullable=False)
    target_type = Column(String(50), nullable=False)
    target_id = Column(String(255))

    old_values = Column(JSON)
    new_values = Column(JSON)

    ip_address = Column(String(64), nullable=False, default="127.0.0.1")
    user_agent = Column(Text, nullable=False, default="Unknown")

    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text)
    extra_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_audit_admin", "admin_user_id"),
        Index("idx_audit_action", "action_type"),
        Index("idx_audit_created", "created_at"),
    )


class ApiUsageLog(Base):
    """One row per API request, for usage accounting."""
    __tablename__ = "api_usage_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"))

    endpoint = Column(String(255), nullable=False)
    method = Column(String(10), nullable=False)
    status_code = Column(Integer, nullable=False)
    response_time_ms = Column(Integer)

    ip_address = Column(String(64))
    user_agent = Column(Text)
    error_message = Column(Text)
    extra_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_usage_user", "user_id"),
        Index("idx_usage_created", "created_at"),
    )


class SubscriptionEvent(Base):
    """Plan lifecycle event (upgrade, cancellation, payment)."""
    __tablename__ = "subscription_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"))

    event_type = Column(Enum(SubscriptionEventType), nullable=False)
    previous_plan = Column(Enum(PlanTier))
    new_plan = Column(Enum(PlanTier))
    amount_cents = Column(Integer)
    currency = Column(String(3), default="USD")
    extra_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_subscription_user", "user_id"),
    )


# =============================================================================
# APPLICATION SETTINGS
# =============================================================================

class AppSetting(Base):
    """
    Typed application setting.

    setting_kind is declared, and setting_value is checked against it when
    written. Readers never infer the type from the stored JSON.
    """
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    setting_key = Column(String(100), unique=True, nullable=False)
    setting_kind = Column(Enum(SettingKind), nullable=False)
    setting_value = Column(JSON, nullable=False)
    setting_type = Column(Enum(SettingCategory), default=SettingCategory.SYSTEM, nullable=False)
    description = Column(Text)
    is_public = Column(Boolean, default=False, nullable=False)
    updated_by = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<AppSetting {self.setting_key}={self.setting_value!r}>"
