"""
Database Module

SQLAlchemy models and session management for profiles, analysis reports,
audit/usage records and application settings.
"""

from .models import (
    Base,
    PlanTier,
    UserRole,
    InputType,
    SubscriptionEventType,
    SettingKind,
    SettingCategory,
    Profile,
    AnalysisReport,
    AdminAuditLog,
    ApiUsageLog,
    SubscriptionEvent,
    AppSetting,
)
from .session import (
    get_database_url,
    create_db_engine,
    get_engine,
    configure_engine,
    get_session_factory,
    get_db,
    get_db_context,
    init_db,
    check_db_connection,
)

__all__ = [
    # Models
    "Base",
    "PlanTier",
    "UserRole",
    "InputType",
    "SubscriptionEventType",
    "SettingKind",
    "SettingCategory",
    "Profile",
    "AnalysisReport",
    "AdminAuditLog",
    "ApiUsageLog",
    "SubscriptionEvent",
    "AppSetting",
    # Session
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "configure_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "init_db",
    "check_db_connection",
]
