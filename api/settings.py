"""
Application Settings API

Endpoints:
- GET /api/settings/public - Public settings (no auth)
- GET /api/admin/settings - All settings (admin only)
- PUT /api/admin/settings/{key} - Create or update a setting (admin only)

Values are typed as {kind: bool|number|string, value}. Writes are checked
against the declared kind and audited.
"""

import logging
from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from verisource.admin import AppSettingsStore
from verisource.audit import AuditRecorder, ClientMetadata
from verisource.auth import get_client_metadata, require_admin
from verisource.database import AppSetting, Profile, SettingCategory, get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Settings"])


class SettingResponse(BaseModel):
    key: str
    kind: str
    value: Union[bool, int, float, str]
    category: str
    description: Optional[str]
    is_public: bool

    @classmethod
    def from_row(cls, row: AppSetting) -> "SettingResponse":
        return cls(
            key=row.setting_key,
            kind=row.setting_kind.value,
            value=row.setting_value,
            category=row.setting_type.value,
            description=row.description,
            is_public=row.is_public,
        )


class UpdateSettingRequest(BaseModel):
    """Kind is required for new settings and must match for existing ones."""
    value: Any
    kind: Optional[str] = Field(None, pattern="^(bool|number|string)$")
    category: str = Field("system", pattern="^(system|analysis|ui|security|ads)$")
    description: Optional[str] = Field(None, max_length=500)


@router.get("/api/settings/public", response_model=List[SettingResponse])
def list_public_settings(db: Session = Depends(get_db)):
    return [SettingResponse.from_row(r) for r in AppSettingsStore(db).list_settings(public_only=True)]


@router.get("/api/admin/settings", response_model=List[SettingResponse])
def list_settings(
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [SettingResponse.from_row(r) for r in AppSettingsStore(db).list_settings()]


@router.put("/api/admin/settings/{key}", response_model=SettingResponse)
def update_setting(
    key: str,
    request: UpdateSettingRequest,
    admin: Profile = Depends(require_admin),
    client: ClientMetadata = Depends(get_client_metadata),
    db: Session = Depends(get_db),
):
    """
    Create or update a typed setting (admin only).

    Raises:
        400: Value does not match the setting's kind
    """
    store = AppSettingsStore(db)
    previous, new = store.set(
        key,
        request.value,
        kind=request.kind,
        updated_by=admin.id,
        category=SettingCategory(request.category),
        description=request.description,
    )

    AuditRecorder(db).record(
        actor_id=admin.id,
        action_type="update_setting" if previous else "create_setting",
        target_type="app_setting",
        target_id=key,
        old_values=previous.to_dict() if previous else None,
        new_values=new.to_dict(),
        client=client,
    )

    logger.info(f"Admin {admin.email} set {key} = {new.value!r}")
    return SettingResponse.from_row(store.get_row(key))
