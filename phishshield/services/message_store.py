"""
Scan history
In-memory store of scanned messages and their verdicts. Process local: a
restart starts with an empty history.
"""

import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from phishshield.core.threat_intel import Clock, utc_now
from phishshield.core.threat_level import ThreatLevel

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """A scanned message as stored in the history"""
    id: int
    content: str
    sender: Optional[str]
    scan_date: datetime
    threat_level: ThreatLevel
    threat_details: Optional[Dict[str, Any]] = None
    is_read: bool = False
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["threat_level"] = self.threat_level.value
        data["scan_date"] = self.scan_date.isoformat()
        return data


# Fields a caller may change on an existing message
UPDATABLE_FIELDS = {"is_read", "sender", "threat_details", "source"}


class MessageStore:
    """Auto-incrementing in-memory message history"""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._messages: Dict[int, Message] = {}
        self._next_id = 1

    def create_message(self, content: str, threat_level: ThreatLevel,
                       sender: Optional[str] = None,
                       threat_details: Optional[Dict[str, Any]] = None,
                       source: Optional[str] = None,
                       scan_date: Optional[datetime] = None) -> Message:
        message = Message(
            id=self._next_id,
            content=content,
            sender=sender,
            scan_date=scan_date or self._clock(),
            threat_level=ThreatLevel(threat_level),
            threat_details=threat_details,
            source=source,
        )
        self._messages[message.id] = message
        self._next_id += 1
        logger.debug(f"Stored message {message.id} ({message.threat_level.value})")
        return message

    def get_message(self, message_id: int) -> Optional[Message]:
        return self._messages.get(message_id)

    def get_messages(self, limit: Optional[int] = None) -> List[Message]:
        """Messages newest first, optionally truncated to `limit`"""
        messages = sorted(self._messages.values(), key=lambda m: (m.scan_date, m.id), reverse=True)
        return messages[:limit] if limit else messages

    def get_messages_by_threat_level(self, threat_level: ThreatLevel) -> List[Message]:
        level = ThreatLevel(threat_level)
        return [m for m in self.get_messages() if m.threat_level == level]

    def update_message(self, message_id: int, **updates: Any) -> Optional[Message]:
        message = self._messages.get(message_id)
        if message is None:
            return None

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        updated = replace(message, **updates)
        self._messages[message_id] = updated
        return updated

    def delete_message(self, message_id: int) -> bool:
        return self._messages.pop(message_id, None) is not None

    def get_message_stats(self, days: int = 30) -> Dict[str, int]:
        """Count messages per threat level scanned within the last `days` days"""
        since = self._clock() - timedelta(days=days)
        stats = {level.value: 0 for level in ThreatLevel}
        for message in self._messages.values():
            if message.scan_date >= since:
                stats[message.threat_level.value] += 1
        return stats

    def __len__(self) -> int:
        return len(self._messages)
