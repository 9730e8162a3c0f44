"""
Phishing Analyzer
Combines lexical heuristics with threat intelligence lookups.

Enhanced analysis only ever raises the threat level: the result is the
maximum of the lexical baseline and every intelligence-derived level. A failed
lookup is logged and reported, and the analysis continues without it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from phishshield.core.indicators import (
    DEFAULT_CONFIG,
    IndicatorConfig,
    match_text_indicators,
    match_url_indicators,
)
from phishshield.core.threat_intel import DomainReputation, SenderReputation, ThreatIntelligence
from phishshield.core.threat_level import ThreatLevel, classify_text, classify_url, escalate
from phishshield.utils.url_parser import first_url

logger = logging.getLogger(__name__)

# Called with (check name, looked-up value, exception) when a lookup fails
LookupErrorHandler = Callable[[str, str, Exception], None]

SENDER_SUSPICIOUS_REASON = "Sender domain appears suspicious"
SENDER_NEW_DOMAIN_REASON = "Sender domain was registered recently"
SENDER_NO_AUTH_REASON = "Sender domain has no email authentication (DMARC, SPF, DKIM)"

# Sender reputation escalation thresholds
SENDER_PHISHING_SCORE = 20
SENDER_SUSPICIOUS_SCORE = 50


@dataclass(frozen=True)
class ThreatData:
    domain_info: Optional[DomainReputation] = None
    sender_info: Optional[SenderReputation] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.domain_info is not None:
            data["domainInfo"] = self.domain_info.to_dict()
        if self.sender_info is not None:
            data["senderInfo"] = self.sender_info.to_dict()
        return data


@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis result for one scan"""
    threat_level: ThreatLevel
    reasons: Tuple[str, ...]
    content: str
    threat_data: Optional[ThreatData] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "threatLevel": self.threat_level.value,
            "reasons": list(self.reasons),
            "content": self.content,
        }
        if self.threat_data is not None:
            result["threatData"] = self.threat_data.to_dict()
        return result


@dataclass
class _Verdict:
    """Mutable accumulator used while one analysis is in progress"""
    level: ThreatLevel
    reasons: List[str] = field(default_factory=list)

    def raise_to(self, level: ThreatLevel) -> None:
        self.level = escalate(self.level, level)


def _require_str(value: Any, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")


def analyze_text_for_phishing(text: str, config: IndicatorConfig = DEFAULT_CONFIG) -> AnalysisResult:
    """Lexical-only text analysis"""
    _require_str(text, "text")
    reasons = match_text_indicators(text, config)
    return AnalysisResult(
        threat_level=classify_text(len(reasons)),
        reasons=tuple(reasons),
        content=text,
    )


def analyze_url_for_threats(url: str, config: IndicatorConfig = DEFAULT_CONFIG) -> AnalysisResult:
    """Lexical-only URL analysis"""
    _require_str(url, "url")
    reasons = match_url_indicators(url, config)
    return AnalysisResult(
        threat_level=classify_url(len(reasons)),
        reasons=tuple(reasons),
        content=url,
    )


class PhishingAnalyzer:
    """Baseline and enhanced (threat intelligence) analysis of text and URLs"""

    def __init__(
        self,
        intelligence: ThreatIntelligence,
        config: IndicatorConfig = DEFAULT_CONFIG,
        on_lookup_error: Optional[LookupErrorHandler] = None,
    ):
        self.intelligence = intelligence
        self.config = config
        self.on_lookup_error = on_lookup_error

    async def scan_text(self, content: str, sender: Optional[str] = None,
                        enhanced: bool = False) -> AnalysisResult:
        if enhanced:
            return await self.analyze_text_with_threat_intelligence(content, sender)
        return analyze_text_for_phishing(content, self.config)

    async def scan_url(self, url: str, enhanced: bool = False) -> AnalysisResult:
        if enhanced:
            return await self.analyze_url_with_threat_intelligence(url)
        return analyze_url_for_threats(url, self.config)

    async def analyze_text_with_threat_intelligence(self, text: str,
                                                    sender: Optional[str] = None) -> AnalysisResult:
        """
        Lexical text analysis enriched with domain and sender reputation.

        The first http(s) URL in the text is looked up; a sender containing
        "@" is checked for email authentication.
        """
        baseline = analyze_text_for_phishing(text, self.config)
        if sender is not None:
            _require_str(sender, "sender")

        verdict = _Verdict(baseline.threat_level, list(baseline.reasons))
        domain_info = None
        sender_info = None

        url = first_url(text)
        if url:
            domain_info = await self._lookup_domain(url)
            if domain_info is not None:
                self._apply_domain_reputation(verdict, domain_info)

        if sender and '@' in sender:
            sender_info = await self._lookup_sender(sender)
            if sender_info is not None:
                self._apply_sender_reputation(verdict, sender_info)

        return self._result(verdict, text, domain_info, sender_info)

    async def analyze_url_with_threat_intelligence(self, url: str) -> AnalysisResult:
        """Lexical URL analysis enriched with domain reputation"""
        baseline = analyze_url_for_threats(url, self.config)
        verdict = _Verdict(baseline.threat_level, list(baseline.reasons))

        domain_info = await self._lookup_domain(url)
        if domain_info is not None:
            self._apply_domain_reputation(verdict, domain_info)

        return self._result(verdict, url, domain_info, None)

    def _apply_domain_reputation(self, verdict: _Verdict, info: DomainReputation) -> None:
        if info.malicious:
            verdict.reasons.append(
                f"URL contains a domain reported as malicious by {', '.join(info.sources)}"
            )
            verdict.raise_to(ThreatLevel.PHISHING)
        elif info.suspicious:
            verdict.reasons.append(
                f"URL contains a suspicious domain (reputation score: {info.reputation_score}/100)"
            )

        if info.suspicious:
            verdict.raise_to(ThreatLevel.SUSPICIOUS)

        if (info.malicious or info.suspicious) and info.categories:
            verdict.reasons.append(f"Domain categorized as: {', '.join(info.categories)}")

    def _apply_sender_reputation(self, verdict: _Verdict, info: SenderReputation) -> None:
        if info.suspicious_domain:
            verdict.reasons.append(SENDER_SUSPICIOUS_REASON)
        if info.new_domain:
            verdict.reasons.append(SENDER_NEW_DOMAIN_REASON)
        if not (info.has_dmarc or info.has_spf or info.has_dkim):
            verdict.reasons.append(SENDER_NO_AUTH_REASON)

        if info.reputation_score < SENDER_PHISHING_SCORE:
            verdict.raise_to(ThreatLevel.PHISHING)
        elif info.reputation_score < SENDER_SUSPICIOUS_SCORE:
            verdict.raise_to(ThreatLevel.SUSPICIOUS)

    async def _lookup_domain(self, url: str) -> Optional[DomainReputation]:
        try:
            return await self.intelligence.query_url(url)
        except Exception as e:
            self._report_failure("domain_reputation", url, e)
            return None

    async def _lookup_sender(self, sender: str) -> Optional[SenderReputation]:
        try:
            return await self.intelligence.analyze_email_sender(sender)
        except Exception as e:
            self._report_failure("sender_reputation", sender, e)
            return None

    def _report_failure(self, check: str, target: str, error: Exception) -> None:
        logger.warning(f"{check} lookup failed for {target}; using lexical result only: {error}")
        if self.on_lookup_error is None:
            return
        try:
            self.on_lookup_error(check, target, error)
        except Exception as handler_error:
            logger.error(f"Lookup error handler raised: {handler_error}")

    @staticmethod
    def _result(verdict: _Verdict, content: str,
                domain_info: Optional[DomainReputation],
                sender_info: Optional[SenderReputation]) -> AnalysisResult:
        threat_data = None
        if domain_info is not None or sender_info is not None:
            threat_data = ThreatData(domain_info=domain_info, sender_info=sender_info)
        return AnalysisResult(
            threat_level=verdict.level,
            reasons=tuple(verdict.reasons),
            content=content,
            threat_data=threat_data,
        )
