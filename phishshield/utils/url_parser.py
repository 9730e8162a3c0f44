"""
URL and address helpers
Extracts URLs from free text and normalizes hosts for matching and caching
"""

import re
from typing import List, Optional
from urllib.parse import urlparse

# Common URL pattern
URL_PATTERN = re.compile(
    r'https?://[^\s<>"\')\]]+',
    re.IGNORECASE
)

_SCHEME_PATTERN = re.compile(r'^[a-z][a-z0-9+.\-]*://')
_WWW_PATTERN = re.compile(r'^www\.')
_IPV4_PATTERN = re.compile(r'^\d{1,3}(?:\.\d{1,3}){3}$')


def extract_urls(text: str, limit: int = 20) -> List[str]:
    """Extract URLs from text, in order of appearance, without duplicates"""
    if not text:
        return []
    clean_urls = []
    seen = set()
    for url in URL_PATTERN.findall(text):
        # Remove trailing punctuation
        url = url.rstrip('.,;:!?')
        if url not in seen:
            seen.add(url)
            clean_urls.append(url)
    return clean_urls[:limit]


def first_url(text: str) -> Optional[str]:
    """Return the first http(s) URL in text, or None"""
    urls = extract_urls(text, limit=1)
    return urls[0] if urls else None


def normalize_domain(url: str) -> str:
    """
    Reduce a URL or bare host to its leading segment.

    Lowercases, strips the scheme and a leading "www.", keeps the first
    "/"-delimited segment and drops any query string or fragment.
    "HTTPS://WWW.Example.COM/path?x=1" and "example.com" both give "example.com".
    """
    domain = url.strip().lower()
    domain = _SCHEME_PATTERN.sub('', domain)
    domain = _WWW_PATTERN.sub('', domain)
    domain = domain.split('/')[0]
    domain = domain.split('?')[0].split('#')[0]
    return domain


def host_of(url: str) -> str:
    """
    Lowercased hostname without userinfo or port. A leading "www." is kept.
    Bare hosts without a scheme are accepted.
    """
    candidate = url.strip()
    if not _SCHEME_PATTERN.match(candidate.lower()):
        candidate = '//' + candidate
    try:
        return urlparse(candidate).hostname or ''
    except ValueError:
        # Unbalanced IPv6 brackets and the like
        host = _SCHEME_PATTERN.sub('', url.strip().lower())
        host = re.split(r'[/?#]', host, maxsplit=1)[0]
        return host.rsplit('@', 1)[-1]


def domain_key(url: str) -> str:
    """Cache key for a URL's domain: the host without "www.", port or userinfo"""
    host = _WWW_PATTERN.sub('', host_of(url))
    return host or normalize_domain(url)


def is_ip_literal(host: str) -> bool:
    return bool(_IPV4_PATTERN.match(host))


def sender_domain(email: str) -> str:
    """Domain part of an email address ("" when there is none)"""
    parts = email.split('@')
    return parts[1].strip().lower() if len(parts) > 1 else ""
