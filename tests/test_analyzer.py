"""Tests for baseline and threat-intelligence-enhanced analysis."""

import pytest

from phishshield.core.analyzer import (
    SENDER_NEW_DOMAIN_REASON,
    SENDER_NO_AUTH_REASON,
    SENDER_SUSPICIOUS_REASON,
    PhishingAnalyzer,
    analyze_text_for_phishing,
    analyze_url_for_threats,
)
from phishshield.core.indicators import (
    SENSITIVE_REASON,
    THREAT_REASON,
    URGENCY_REASON,
    URL_IP_REASON,
    URL_SECURITY_TERMS_REASON,
    URL_SHORTENER_REASON,
)
from phishshield.core.threat_intel import ThreatIntelligence
from phishshield.core.threat_level import ThreatLevel


class BrokenProvider:
    name = "Broken"

    async def lookup(self, value):
        raise ConnectionError("reputation service down")


@pytest.fixture()
def broken_intel(clock):
    return ThreatIntelligence(
        domain_providers=[BrokenProvider()],
        sender_provider=BrokenProvider(),
        clock=clock,
    )


# Baseline

def test_baseline_text_phishing():
    result = analyze_text_for_phishing("URGENT: verify your account now! http://amaz0n-secure.xyz")
    assert result.threat_level is ThreatLevel.PHISHING
    assert result.reasons[:3] == (URGENCY_REASON, THREAT_REASON, SENSITIVE_REASON)
    assert result.threat_data is None


def test_baseline_text_safe():
    result = analyze_text_for_phishing("Let's meet for coffee tomorrow")
    assert result.threat_level is ThreatLevel.SAFE
    assert result.reasons == ()
    assert result.content == "Let's meet for coffee tomorrow"


def test_baseline_url_levels():
    ip_url = analyze_url_for_threats("http://192.168.1.1/login")
    assert ip_url.threat_level is ThreatLevel.PHISHING
    assert ip_url.reasons == (URL_IP_REASON, URL_SECURITY_TERMS_REASON)

    short = analyze_url_for_threats("https://bit.ly/xyz")
    assert short.threat_level is ThreatLevel.SUSPICIOUS
    assert short.reasons == (URL_SHORTENER_REASON,)


def test_non_string_input_is_rejected():
    with pytest.raises(TypeError):
        analyze_text_for_phishing(None)
    with pytest.raises(TypeError):
        analyze_url_for_threats(42)


@pytest.mark.asyncio
async def test_scan_without_enhancement_matches_baseline(analyzer):
    text = "You won a free prize"
    result = await analyzer.scan_text(text)
    assert result == analyze_text_for_phishing(text)


# Enhanced text

@pytest.mark.asyncio
async def test_malicious_domain_escalates_text(analyzer):
    result = await analyzer.scan_text("Check http://phishing.com/win", enhanced=True)

    assert analyze_text_for_phishing("Check http://phishing.com/win").threat_level is ThreatLevel.SAFE
    assert result.threat_level is ThreatLevel.PHISHING
    assert result.reasons == (
        "URL contains a domain reported as malicious by KeywordReputation, PhishingDB",
        "Domain categorized as: phishing, fraud",
    )
    assert result.threat_data.domain_info.domain == "phishing.com"
    assert result.threat_data.sender_info is None


@pytest.mark.asyncio
async def test_text_without_url_or_sender_has_no_threat_data(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence("Team lunch on Friday")
    assert result.threat_level is ThreatLevel.SAFE
    assert result.threat_data is None


@pytest.mark.asyncio
async def test_unauthenticated_sender_escalates(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence(
        "Lunch at noon?", sender="support@phishing-alerts.xyz"
    )

    assert result.threat_level is ThreatLevel.PHISHING
    assert result.reasons == (
        SENDER_SUSPICIOUS_REASON,
        SENDER_NEW_DOMAIN_REASON,
        SENDER_NO_AUTH_REASON,
    )
    assert result.threat_data.sender_info.reputation_score == 0


@pytest.mark.asyncio
async def test_trusted_sender_leaves_level_alone(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence(
        "Lunch at noon?", sender="alice@example.com"
    )
    assert result.threat_level is ThreatLevel.SAFE
    assert result.reasons == ()
    assert result.threat_data.sender_info.security_level.value == "high"


@pytest.mark.asyncio
async def test_sender_without_address_is_not_looked_up(analyzer, intel):
    result = await analyzer.analyze_text_with_threat_intelligence("hello", sender="Manual Scan")
    assert result.threat_data is None
    assert intel.get_cache_stats()["sender_entries"] == 0


@pytest.mark.asyncio
async def test_non_string_sender_is_rejected(analyzer):
    with pytest.raises(TypeError):
        await analyzer.analyze_text_with_threat_intelligence("hello", sender=123)


@pytest.mark.asyncio
async def test_partially_authenticated_sender_raises_to_suspicious(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence(
        "Lunch at noon?", sender="x@scam.io"
    )

    assert result.threat_data.sender_info.reputation_score == 33
    assert result.threat_level is ThreatLevel.SUSPICIOUS
    assert result.reasons == (SENDER_SUSPICIOUS_REASON,)


@pytest.mark.asyncio
async def test_domain_reasons_come_before_sender_reasons(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence(
        "Check http://phishing.com/win", sender="x@scam.io"
    )

    assert result.threat_level is ThreatLevel.PHISHING
    assert result.reasons == (
        "URL contains a domain reported as malicious by KeywordReputation, PhishingDB",
        "Domain categorized as: phishing, fraud",
        SENDER_SUSPICIOUS_REASON,
    )


# Enhanced URL

@pytest.mark.asyncio
async def test_enhanced_url_keeps_baseline_reasons_first(analyzer):
    result = await analyzer.scan_url("https://verify-account.example", enhanced=True)

    assert result.threat_level is ThreatLevel.SUSPICIOUS
    assert result.reasons[0] == URL_SECURITY_TERMS_REASON
    assert result.reasons[1].startswith("URL contains a suspicious domain (reputation score: ")
    assert result.reasons[2] == "Domain categorized as: suspicious"


@pytest.mark.asyncio
async def test_enhanced_url_never_lowers_level(analyzer):
    baseline = analyze_url_for_threats("https://bit.ly/xyz")
    result = await analyzer.analyze_url_with_threat_intelligence("https://bit.ly/xyz")

    assert result.threat_level >= baseline.threat_level
    assert result.reasons == baseline.reasons
    assert result.threat_data.domain_info.reputation_score == 100


# Lookup failures

@pytest.mark.asyncio
async def test_failed_lookups_fall_back_to_lexical_result(broken_intel):
    errors = []
    analyzer = PhishingAnalyzer(broken_intel, on_lookup_error=lambda *args: errors.append(args))
    text = "URGENT: verify your account at http://example.com"

    result = await analyzer.scan_text(text, sender="bob@example.com", enhanced=True)

    baseline = analyze_text_for_phishing(text)
    assert result.threat_level is baseline.threat_level
    assert result.reasons == baseline.reasons
    assert result.threat_data is None
    assert [(check, target) for check, target, _ in errors] == [
        ("domain_reputation", "http://example.com"),
        ("sender_reputation", "bob@example.com"),
    ]


@pytest.mark.asyncio
async def test_raising_error_handler_does_not_break_analysis(broken_intel):
    def explode(check, target, error):
        raise RuntimeError("handler bug")

    analyzer = PhishingAnalyzer(broken_intel, on_lookup_error=explode)
    result = await analyzer.scan_url("https://bit.ly/xyz", enhanced=True)
    assert result.threat_level is ThreatLevel.SUSPICIOUS


@pytest.mark.asyncio
async def test_successful_lookup_reports_no_failures(analyzer, lookup_errors):
    await analyzer.scan_url("https://example.com", enhanced=True)
    assert lookup_errors == []


# Wire format

@pytest.mark.asyncio
async def test_to_dict_uses_camel_case(analyzer):
    result = await analyzer.analyze_text_with_threat_intelligence(
        "Check http://phishing.com/win", sender="alice@example.com"
    )
    data = result.to_dict()

    assert data["threatLevel"] == "phishing"
    assert data["content"] == "Check http://phishing.com/win"
    domain_info = data["threatData"]["domainInfo"]
    assert domain_info["reputationScore"] == 10
    assert domain_info["sources"] == ["KeywordReputation", "PhishingDB"]
    assert domain_info["lastChecked"].startswith("2024-05-01T12:00:00")
    sender_info = data["threatData"]["senderInfo"]
    assert sender_info["hasDmarc"] is True
    assert sender_info["securityLevel"] == "high"


def test_baseline_to_dict_has_no_threat_data():
    data = analyze_url_for_threats("https://example.com").to_dict()
    assert data == {"threatLevel": "safe", "reasons": [], "content": "https://example.com"}
