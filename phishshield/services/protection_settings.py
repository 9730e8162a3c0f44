"""
Protection settings
Which channels are protected (SMS, email, social media) and whether scanning
runs on the device. Process local, like the scan history.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtectionSettings:
    """Protection toggles for the single local profile"""
    id: int
    sms_protection: bool = True
    email_protection: bool = True
    social_media_protection: bool = False
    on_device_scanning: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


TOGGLE_FIELDS = {f.name for f in fields(ProtectionSettings)} - {"id"}


def _validate_toggles(values: Dict[str, Any]) -> None:
    unknown = set(values) - TOGGLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown protection settings: {', '.join(sorted(unknown))}")
    for name, value in values.items():
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false")


class ProtectionSettingsStore:
    """Holds at most one settings record; absent until created"""

    def __init__(self):
        self._settings: Optional[ProtectionSettings] = None
        self._next_id = 1

    def get_settings(self) -> Optional[ProtectionSettings]:
        return self._settings

    def create_settings(self, **toggles: Any) -> ProtectionSettings:
        """Create (or replace) the record, defaulting any toggle not given"""
        _validate_toggles(toggles)
        self._settings = ProtectionSettings(id=self._next_id, **toggles)
        self._next_id += 1
        return self._settings

    def update_settings(self, **updates: Any) -> Optional[ProtectionSettings]:
        """Apply a partial update; None when no record exists"""
        if self._settings is None:
            return None
        _validate_toggles(updates)
        self._settings = replace(self._settings, **updates)
        logger.info(f"Protection settings updated: {', '.join(sorted(updates)) or 'no changes'}")
        return self._settings
