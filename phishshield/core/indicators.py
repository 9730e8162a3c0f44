"""
Lexical Indicator Matcher
Scans raw text and URLs against fixed keyword and regex families and reports
one human-readable reason per matched family.

Matching never raises for string input: malformed URLs are treated as opaque
strings and still pattern-matched.
"""

import json
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple

from phishshield.utils.url_parser import host_of, is_ip_literal

logger = logging.getLogger(__name__)

# Reason strings (text)
URGENCY_REASON = "Urgency language detected"
REWARD_REASON = "Reward scam patterns detected"
THREAT_REASON = "Security threat language detected"
SENSITIVE_REASON = "Requests for sensitive information"
BRAND_REASON = "Brand impersonation detected"
SHORTENER_REASON = "Suspicious URL shortener detected"
LINK_INSTRUCTION_REASON = "Suspicious link instructions"
TIME_PRESSURE_REASON = "Artificial time pressure"

# Reason strings (URL)
URL_BRAND_REASON = "Brand impersonation detected in URL"
URL_SHORTENER_REASON = "URL shortener detected (could mask malicious destination)"
URL_TLD_REASON = "Suspicious top-level domain (.xyz, .club, etc.)"
URL_IP_REASON = "IP address used in URL instead of domain name"
URL_SUBDOMAIN_REASON = "Excessive subdomains in URL"
URL_SECURITY_TERMS_REASON = "Security-related terms in URL"

BRAND_IMPERSONATION_PATTERN = r'amaz[0o]n|g[0o]{2}gle|faceb[0o]{2}k|appl[e3]|payp[a@]l|netfl[i1]x'
LINK_INSTRUCTION_PATTERN = r'click here|tap here|click the link|tap this link'
TIME_PRESSURE_PATTERN = r'\d+\s*(?:hour|hr|minute|min|day|sec|second)s?|expires|limited time'

KNOWN_PHISHING_DOMAINS = (
    'phishing.com',
    'scam.com',
    'secure-bank.xyz',
    'login-verify.com',
    'account-update.info',
)


@dataclass(frozen=True)
class IndicatorConfig:
    """Keyword families and patterns used by the matchers, plus the reputation denylist"""

    urgency_terms: Tuple[str, ...] = (
        'urgent', 'immediate', 'alert', 'attention', 'act now',
        'action required', 'immediately', 'quickly',
    )
    reward_terms: Tuple[str, ...] = (
        'won', 'winner', 'prize', 'gift card', 'reward', 'free', 'congratulations',
    )
    threat_terms: Tuple[str, ...] = (
        'suspended', 'compromised', 'verify', 'secure', 'unusual activity',
        'suspicious', 'breached',
    )
    sensitive_terms: Tuple[str, ...] = (
        'password', 'login', 'credit card', 'account', 'bank', 'ssn', 'social security',
    )
    shortener_domains: Tuple[str, ...] = (
        'bit.ly', 'tinyurl', 'goo.gl', 't.co', 'is.gd', 'cli.gs',
        'ow.ly', 'buff.ly', 'adf.ly', 'bit.do',
    )
    suspicious_tlds: Tuple[str, ...] = (
        '.xyz', '.top', '.club', '.online', '.site', '.fun', '.rest', '.icu', '.loan',
    )
    url_security_terms: Tuple[str, ...] = (
        'secure', 'login', 'signin', 'verify', 'account', 'password', 'auth',
    )
    brand_pattern: str = BRAND_IMPERSONATION_PATTERN
    link_instruction_pattern: str = LINK_INSTRUCTION_PATTERN
    time_pressure_pattern: str = TIME_PRESSURE_PATTERN
    max_subdomain_dots: int = 3
    known_phishing_domains: Tuple[str, ...] = KNOWN_PHISHING_DOMAINS

    # Compiled once per config instance
    _compiled: Dict[str, Pattern] = field(default_factory=dict, init=False, repr=False, compare=False)

    def pattern(self, name: str) -> Pattern:
        compiled = self._compiled.get(name)
        if compiled is None:
            if name == "shortener":
                source = r'\b(?:' + '|'.join(re.escape(d) for d in self.shortener_domains) + r')\b'
            else:
                source = getattr(self, f"{name}_pattern")
            compiled = re.compile(source, re.IGNORECASE)
            self._compiled[name] = compiled
        return compiled


DEFAULT_CONFIG = IndicatorConfig()

# JSON keys that may extend a keyword family
_EXTENDABLE_FAMILIES = (
    'urgency_terms', 'reward_terms', 'threat_terms', 'sensitive_terms',
    'shortener_domains', 'suspicious_tlds', 'url_security_terms',
    'known_phishing_domains',
)


def load_indicator_config(path: Optional[str]) -> IndicatorConfig:
    """
    Load keyword extensions from a JSON file and merge them with the defaults.
    Returns the default config if the file doesn't exist or is invalid.
    """
    if not path:
        return DEFAULT_CONFIG

    config_path = Path(path)
    try:
        if not config_path.exists():
            logger.warning(f"Indicator config not found: {config_path}")
            return DEFAULT_CONFIG
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load indicator config: {e}")
        return DEFAULT_CONFIG

    updates = {}
    for family in _EXTENDABLE_FAMILIES:
        extra = data.get(family)
        if not extra:
            continue
        current = getattr(DEFAULT_CONFIG, family)
        merged = current + tuple(
            term.lower() for term in extra
            if isinstance(term, str) and not term.startswith("_") and term.lower() not in current
        )
        updates[family] = merged

    logger.info(f"Loaded indicator config from {config_path} ({len(updates)} families extended)")
    return replace(DEFAULT_CONFIG, **updates)


def _contains_any(text: str, terms: Tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def match_text_indicators(content: str, config: IndicatorConfig = DEFAULT_CONFIG) -> List[str]:
    """Return one reason per matched family, in fixed family order"""
    lower_text = content.lower()
    reasons: List[str] = []

    if _contains_any(lower_text, config.urgency_terms):
        reasons.append(URGENCY_REASON)

    if _contains_any(lower_text, config.reward_terms):
        reasons.append(REWARD_REASON)

    if _contains_any(lower_text, config.threat_terms):
        reasons.append(THREAT_REASON)

    if _contains_any(lower_text, config.sensitive_terms):
        reasons.append(SENSITIVE_REASON)

    if config.pattern("brand").search(content):
        reasons.append(BRAND_REASON)

    if config.pattern("shortener").search(content):
        reasons.append(SHORTENER_REASON)

    if config.pattern("link_instruction").search(content):
        reasons.append(LINK_INSTRUCTION_REASON)

    if config.pattern("time_pressure").search(content):
        reasons.append(TIME_PRESSURE_REASON)

    return reasons


def match_url_indicators(url: str, config: IndicatorConfig = DEFAULT_CONFIG) -> List[str]:
    """Return one reason per matched URL heuristic, in fixed order"""
    lower_url = url.lower()
    host = host_of(url)
    reasons: List[str] = []

    if config.pattern("brand").search(lower_url):
        reasons.append(URL_BRAND_REASON)

    if config.pattern("shortener").search(lower_url):
        reasons.append(URL_SHORTENER_REASON)

    if any(host.endswith(tld) for tld in config.suspicious_tlds):
        reasons.append(URL_TLD_REASON)

    ip_host = is_ip_literal(host)
    if ip_host:
        reasons.append(URL_IP_REASON)

    # An IPv4 literal always has three dots; only count real subdomains
    if not ip_host and host.count('.') >= config.max_subdomain_dots:
        reasons.append(URL_SUBDOMAIN_REASON)

    if _contains_any(lower_url, config.url_security_terms):
        reasons.append(URL_SECURITY_TERMS_REASON)

    return reasons
