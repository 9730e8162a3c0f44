"""
Protection settings endpoints
Read and partially update the channel protection toggles
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, StrictBool
from pydantic.alias_generators import to_camel
import logging

from phishshield.services.protection_settings import ProtectionSettings, ProtectionSettingsStore
from phishshield.utils.startup import get_protection_settings_store

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = "Protection settings not found"


class ProtectionSettingsOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    sms_protection: bool
    email_protection: bool
    social_media_protection: bool
    on_device_scanning: bool

    @classmethod
    def from_settings(cls, settings: ProtectionSettings) -> "ProtectionSettingsOut":
        return cls.model_validate(settings.to_dict())


class ProtectionSettingsUpdate(BaseModel):
    """Partial update; unknown keys and non-boolean values are rejected"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    sms_protection: Optional[StrictBool] = None
    email_protection: Optional[StrictBool] = None
    social_media_protection: Optional[StrictBool] = None
    on_device_scanning: Optional[StrictBool] = None


@router.get("/protection-settings", response_model=ProtectionSettingsOut)
async def get_protection_settings(
    store: ProtectionSettingsStore = Depends(get_protection_settings_store)
) -> ProtectionSettingsOut:
    settings = store.get_settings()
    if settings is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ProtectionSettingsOut.from_settings(settings)


@router.patch("/protection-settings", response_model=ProtectionSettingsOut)
async def update_protection_settings(
    payload: ProtectionSettingsUpdate,
    store: ProtectionSettingsStore = Depends(get_protection_settings_store)
) -> ProtectionSettingsOut:
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    try:
        settings = store.update_settings(**updates)
    except ValueError as e:
        logger.warning(f"Rejected protection settings update: {e}")
        raise HTTPException(status_code=400, detail="Invalid protection settings data")
    if settings is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ProtectionSettingsOut.from_settings(settings)
