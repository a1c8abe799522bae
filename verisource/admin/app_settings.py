"""
Application Settings

Typed key/value settings stored in app_settings. Each setting declares its
kind (bool, number or string) and every write is checked against that kind,
so readers never have to guess a value's type from what happens to be
stored.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from verisource.database.models import AppSetting, SettingCategory, SettingKind
from verisource.errors import ValidationError

logger = logging.getLogger(__name__)

MAINTENANCE_MODE_KEY = "maintenance_mode"


def resolve_kind(kind: Union[SettingKind, str]) -> SettingKind:
    try:
        return SettingKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown setting kind: {kind}")


@dataclass(frozen=True)
class SettingValue:
    """A value tagged with its declared kind."""
    kind: SettingKind
    value: Union[bool, float, int, str]

    @classmethod
    def parse(cls, kind: Union[SettingKind, str], value: Any) -> "SettingValue":
        """
        Validate a raw value against a kind.

        Raises:
            ValidationError: Unknown kind, or value does not match it
        """
        kind = resolve_kind(kind)

        if kind == SettingKind.BOOL:
            if not isinstance(value, bool):
                raise ValidationError(f"Expected a boolean, got {type(value).__name__}")
        elif kind == SettingKind.NUMBER:
            # bool is an int subclass; a toggle is not a number
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Expected a number, got {type(value).__name__}")
        elif not isinstance(value, str):
            raise ValidationError(f"Expected a string, got {type(value).__name__}")

        return cls(kind=kind, value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value}


@dataclass(frozen=True)
class SettingDefinition:
    key: str
    default: SettingValue
    category: SettingCategory
    description: str
    is_public: bool = False


DEFAULT_SETTINGS = (
    SettingDefinition(
        "confidence_threshold_default",
        SettingValue(SettingKind.NUMBER, 70),
        SettingCategory.ANALYSIS,
        "Default confidence threshold for analysis",
        is_public=True,
    ),
    SettingDefinition(
        "daily_limit_free",
        SettingValue(SettingKind.NUMBER, 5),
        SettingCategory.ANALYSIS,
        "Daily analysis limit for free users",
        is_public=True,
    ),
    SettingDefinition(
        "daily_limit_pro",
        SettingValue(SettingKind.NUMBER, 200),
        SettingCategory.ANALYSIS,
        "Daily analysis limit for pro users",
        is_public=True,
    ),
    SettingDefinition(
        "max_file_size_free",
        SettingValue(SettingKind.NUMBER, 10485760),
        SettingCategory.ANALYSIS,
        "Max file size for free users (10MB)",
        is_public=True,
    ),
    SettingDefinition(
        "max_file_size_pro",
        SettingValue(SettingKind.NUMBER, 262144000),
        SettingCategory.ANALYSIS,
        "Max file size for pro users (250MB)",
        is_public=True,
    ),
    SettingDefinition(
        "max_file_size_enterprise",
        SettingValue(SettingKind.NUMBER, 1073741824),
        SettingCategory.ANALYSIS,
        "Max file size for enterprise users (1GB)",
        is_public=True,
    ),
    SettingDefinition(
        "enable_ads",
        SettingValue(SettingKind.BOOL, True),
        SettingCategory.ADS,
        "Enable advertisement display",
        is_public=True,
    ),
    SettingDefinition(
        MAINTENANCE_MODE_KEY,
        SettingValue(SettingKind.BOOL, False),
        SettingCategory.SYSTEM,
        "Enable maintenance mode",
        is_public=True,
    ),
)


class AppSettingsStore:
    """Read and write typed settings in one session."""

    def __init__(self, db: Session):
        self.db = db

    def seed_defaults(self) -> int:
        """Insert any default settings that do not exist yet. Returns the count added."""
        existing = set(self.db.execute(select(AppSetting.setting_key)).scalars())
        added = 0
        for definition in DEFAULT_SETTINGS:
            if definition.key in existing:
                continue
            self.db.add(AppSetting(
                setting_key=definition.key,
                setting_kind=definition.default.kind,
                setting_value=definition.default.value,
                setting_type=definition.category,
                description=definition.description,
                is_public=definition.is_public,
            ))
            added += 1

        if added:
            self.db.commit()
            logger.info(f"Seeded {added} default app settings")
        return added

    def get_row(self, key: str) -> Optional[AppSetting]:
        return self.db.execute(
            select(AppSetting).where(AppSetting.setting_key == key)
        ).scalar_one_or_none()

    def get(self, key: str) -> Optional[SettingValue]:
        row = self.get_row(key)
        if row is None:
            return None
        return SettingValue(kind=row.setting_kind, value=row.setting_value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        setting = self.get(key)
        if setting is None or setting.kind != SettingKind.BOOL:
            return default
        return bool(setting.value)

    def list_settings(self, public_only: bool = False) -> List[AppSetting]:
        query = select(AppSetting).order_by(AppSetting.setting_key)
        if public_only:
            query = query.where(AppSetting.is_public.is_(True))
        return list(self.db.execute(query).scalars())

    def set(
        self,
        key: str,
        value: Any,
        kind: Optional[Union[SettingKind, str]] = None,
        updated_by: Optional[UUID] = None,
        category: SettingCategory = SettingCategory.SYSTEM,
        description: Optional[str] = None,
    ) -> Tuple[Optional[SettingValue], SettingValue]:
        """
        Create or update a setting. Not committed.

        An existing setting keeps its declared kind; passing a different
        kind is rejected. New settings must declare a kind.

        Returns:
            (previous value or None, new value)

        Raises:
            ValidationError: Kind missing/mismatched or value of the wrong kind
        """
        row = self.get_row(key)

        if row is None:
            if kind is None:
                raise ValidationError(f"New setting '{key}' must declare a kind")
            new = SettingValue.parse(kind, value)
            row = AppSetting(
                setting_key=key,
                setting_kind=new.kind,
                setting_value=new.value,
                setting_type=category,
                description=description,
                updated_by=updated_by,
            )
            self.db.add(row)
            self.db.flush()
            return None, new

        if kind is not None and resolve_kind(kind) != row.setting_kind:
            raise ValidationError(
                f"Setting '{key}' is declared as {row.setting_kind.value}, not {resolve_kind(kind).value}"
            )

        previous = SettingValue(kind=row.setting_kind, value=row.setting_value)
        new = SettingValue.parse(row.setting_kind, value)
        row.setting_value = new.value
        row.updated_by = updated_by
        if description is not None:
            row.description = description
        self.db.flush()
        return previous, new
