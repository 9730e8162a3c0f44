"""
Threat level classification
Maps a count of detected indicators to an ordinal threat level
"""

from enum import Enum
from typing import Dict


class ThreatLevel(str, Enum):
    """Ordinal threat level: safe < suspicious < phishing"""

    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    PHISHING = "phishing"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other):
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, ThreatLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANK = {
    ThreatLevel.SAFE: 0,
    ThreatLevel.SUSPICIOUS: 1,
    ThreatLevel.PHISHING: 2,
}

# Minimum reason counts per input kind. URLs need fewer signals to escalate.
THRESHOLDS: Dict[str, Dict[str, int]] = {
    "text": {"phishing": 3, "suspicious": 1},
    "url": {"phishing": 2, "suspicious": 1},
}


def classify(reason_count: int, kind: str) -> ThreatLevel:
    """Classify a reason count using the threshold table for `kind` ('text' or 'url')"""
    thresholds = THRESHOLDS[kind]
    if reason_count >= thresholds["phishing"]:
        return ThreatLevel.PHISHING
    if reason_count >= thresholds["suspicious"]:
        return ThreatLevel.SUSPICIOUS
    return ThreatLevel.SAFE


def classify_text(reason_count: int) -> ThreatLevel:
    return classify(reason_count, "text")


def classify_url(reason_count: int) -> ThreatLevel:
    return classify(reason_count, "url")


def escalate(current: ThreatLevel, candidate: ThreatLevel) -> ThreatLevel:
    """Return the higher of two levels; a level is never lowered"""
    return candidate if candidate > current else current
