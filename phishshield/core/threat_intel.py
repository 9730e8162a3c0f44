"""
Threat Intelligence
Domain and sender reputation lookups fronted by a process-local TTL cache.

The bundled providers are offline mocks driven by keyword rules and a static
denylist. They sit behind small provider protocols so a real reputation feed
can replace them without touching the analyzer.
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Generic, Iterable, List, Optional, Protocol, Tuple, TypeVar

from phishshield.core.indicators import KNOWN_PHISHING_DOMAINS
from phishshield.utils.url_parser import domain_key, sender_domain

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

T = TypeVar("T")

DEFAULT_CACHE_TTL = timedelta(hours=24)
DEFAULT_LOOKUP_TIMEOUT = 5.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ThreatLookupError(Exception):
    """A reputation lookup failed or timed out; its verdict is inconclusive"""


@dataclass
class ReputationResult:
    """Verdict from a single reputation provider"""
    source: str
    malicious: bool
    suspicious: bool
    reputation_score: Optional[int] = None
    categories: List[str] = field(default_factory=list)
    reported_times: int = 0


@dataclass(frozen=True)
class DomainReputation:
    """Combined reputation for one normalized domain"""
    domain: str
    malicious: bool
    suspicious: bool
    reputation_score: int
    categories: Tuple[str, ...]
    reported_times: int
    sources: Tuple[str, ...]
    last_checked: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "reputationScore": self.reputation_score,
            "malicious": self.malicious,
            "suspicious": self.suspicious,
            "categories": list(self.categories),
            "reportedTimes": self.reported_times,
            "sources": list(self.sources),
            "lastChecked": self.last_checked.isoformat(),
        }


class SecurityLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"  # no verdict available

    @classmethod
    def from_score(cls, score: int) -> "SecurityLevel":
        if score >= 80:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True)
class SenderReputation:
    """Authentication posture of an email sender's domain"""
    email: str
    domain: str
    reputation_score: int
    has_dmarc: bool
    has_spf: bool
    has_dkim: bool
    suspicious_domain: bool
    new_domain: bool
    security_level: SecurityLevel
    creation_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "domain": self.domain,
            "reputationScore": self.reputation_score,
            "hasDmarc": self.has_dmarc,
            "hasSpf": self.has_spf,
            "hasDkim": self.has_dkim,
            "suspiciousDomain": self.suspicious_domain,
            "newDomain": self.new_domain,
            "securityLevel": self.security_level.value,
            "creationDate": self.creation_date.isoformat() if self.creation_date else None,
        }


class TTLCache(Generic[T]):
    """
    Key/value cache whose entries expire a fixed time after they are stored.

    Expiry is checked lazily on read: an expired entry is deleted the first
    time it is looked up. Nothing sweeps in the background, so keys that are
    never read again stay until purge_expired() or clear() is called.
    """

    def __init__(self, ttl: timedelta = DEFAULT_CACHE_TTL, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[T, datetime]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() < expires_at:
            return value
        del self._entries[key]
        return None

    def set(self, key: str, value: T, stored_at: Optional[datetime] = None) -> None:
        stored_at = stored_at or self._clock()
        self._entries[key] = (value, stored_at + self.ttl)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class KeyedLocks:
    """
    One asyncio.Lock per key, shared by every task that holds or waits for it.
    A key's lock is dropped only when its last user leaves.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class DomainReputationProvider(Protocol):
    name: str

    async def lookup(self, domain: str) -> ReputationResult:
        ...


class SenderReputationProvider(Protocol):
    name: str

    async def lookup(self, email: str) -> SenderReputation:
        ...


class KeywordReputationProvider:
    """
    Keyword-based reputation scorer standing in for a commercial reputation API.
    Long domains take a random penalty, so verdicts are only stable per cache entry.
    """

    name = "KeywordReputation"

    MALICIOUS_KEYWORDS = ('phishing', 'malware', 'hack', 'exploit', 'virus')
    SUSPICIOUS_KEYWORDS = ('phish', 'scam', 'hack', 'secure', 'bank', 'account', 'verify', 'login')

    # (keywords, penalty, category)
    PENALTIES = (
        (('phish', 'scam'), 90, 'phishing'),
        (('bank', 'secure', 'login'), 20, 'financial'),
        (('free', 'prize'), 40, 'suspicious'),
    )

    LONG_DOMAIN_LENGTH = 15
    MAX_RANDOM_PENALTY = 30

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def lookup(self, domain: str) -> ReputationResult:
        has_malicious_word = any(word in domain for word in self.MALICIOUS_KEYWORDS)
        has_suspicious_word = any(word in domain for word in self.SUSPICIOUS_KEYWORDS)

        reputation_score = 100
        categories: List[str] = []

        for keywords, penalty, category in self.PENALTIES:
            if any(word in domain for word in keywords):
                reputation_score -= penalty
                categories.append(category)

        if len(domain) > self.LONG_DOMAIN_LENGTH:
            reputation_score -= self.rng.randrange(self.MAX_RANDOM_PENALTY)

        reputation_score = max(0, min(100, reputation_score))

        if has_malicious_word:
            reported_times = self.rng.randrange(1000) + 10
        elif has_suspicious_word:
            reported_times = self.rng.randrange(10) + 1
        else:
            reported_times = 0

        return ReputationResult(
            source=self.name,
            malicious=has_malicious_word or reputation_score < 30,
            suspicious=has_suspicious_word or reputation_score < 60,
            reputation_score=reputation_score,
            categories=categories,
            reported_times=reported_times,
        )


class PhishingDatabaseProvider:
    """Static denylist standing in for a phishing feed"""

    name = "PhishingDB"

    SUSPICIOUS_KEYWORDS = ('verify', 'secure', 'banking', 'login', 'update', 'account')

    def __init__(self, known_domains: Iterable[str] = KNOWN_PHISHING_DOMAINS):
        self.known_domains = frozenset(d.lower() for d in known_domains)

    async def lookup(self, domain: str) -> ReputationResult:
        is_malicious = domain in self.known_domains
        is_suspicious = not is_malicious and any(word in domain for word in self.SUSPICIOUS_KEYWORDS)

        if is_malicious:
            categories = ['phishing', 'fraud']
        elif is_suspicious:
            categories = ['suspicious']
        else:
            categories = []

        return ReputationResult(
            source=self.name,
            malicious=is_malicious,
            suspicious=is_suspicious,
            categories=categories,
        )


class MockSenderAuthProvider:
    """
    Offline stand-in for DNS (DMARC/SPF/DKIM) and WHOIS lookups.
    Records are inferred from substrings of the domain.
    """

    name = "SenderAuth"

    # (markers, first year, number of years) for mock creation dates
    CREATION_YEAR_RANGES = (
        (('com', 'org', 'net'), 2000, 10),
        (('io', 'app'), 2015, 7),
        (('xyz', 'info'), 2022, 3),
    )

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def lookup(self, email: str) -> SenderReputation:
        domain = sender_domain(email)

        has_dmarc = 'phish' not in domain and 'scam' not in domain and '.' in domain
        has_spf = 'phish' not in domain and '.' in domain
        has_dkim = any(marker in domain for marker in ('com', 'org', 'net'))

        reputation_score = 0
        if has_dmarc:
            reputation_score += 33
        if has_spf:
            reputation_score += 33
        if has_dkim:
            reputation_score += 34

        return SenderReputation(
            email=email,
            domain=domain,
            reputation_score=reputation_score,
            has_dmarc=has_dmarc,
            has_spf=has_spf,
            has_dkim=has_dkim,
            suspicious_domain=self._is_suspicious(domain),
            new_domain=self._is_new(domain),
            security_level=SecurityLevel.from_score(reputation_score),
            creation_date=self._creation_date(domain),
        )

    @staticmethod
    def _is_suspicious(domain: str) -> bool:
        return (
            any(word in domain for word in ('phish', 'scam', 'free', 'verify'))
            or len(domain) > 20
        )

    @staticmethod
    def _is_new(domain: str) -> bool:
        return len(domain) > 15 or 'xyz' in domain or 'info' in domain

    def _creation_date(self, domain: str) -> Optional[date]:
        for markers, first_year, years in self.CREATION_YEAR_RANGES:
            if any(marker in domain for marker in markers):
                return date(
                    first_year + self.rng.randrange(years),
                    1 + self.rng.randrange(12),
                    1 + self.rng.randrange(28),
                )
        return None


class ThreatIntelligence:
    """
    Answers "what do we know about this domain / sender" from a 24 hour cache,
    falling back to the configured providers on a miss.

    Concurrent misses for the same key are serialized by a per-key lock so the
    providers run once. A failed or timed-out lookup raises ThreatLookupError
    and leaves the cache untouched.
    """

    def __init__(
        self,
        domain_providers: Optional[List[DomainReputationProvider]] = None,
        sender_provider: Optional[SenderReputationProvider] = None,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        cache_ttl: timedelta = DEFAULT_CACHE_TTL,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
    ):
        rng = rng or random.Random()
        self.clock = clock
        self.lookup_timeout = lookup_timeout
        self.domain_providers: List[DomainReputationProvider] = (
            domain_providers if domain_providers is not None
            else [KeywordReputationProvider(rng), PhishingDatabaseProvider()]
        )
        self.sender_provider: SenderReputationProvider = sender_provider or MockSenderAuthProvider(rng)

        self._domain_cache: TTLCache[DomainReputation] = TTLCache(cache_ttl, clock)
        self._sender_cache: TTLCache[SenderReputation] = TTLCache(cache_ttl, clock)
        self._domain_locks = KeyedLocks()
        self._sender_locks = KeyedLocks()

    async def query_url(self, url: str) -> DomainReputation:
        """Reputation for the domain of `url` (cached for the TTL)"""
        domain = domain_key(url)

        cached = self._domain_cache.get(domain)
        if cached is not None:
            logger.debug(f"Cache hit for domain: {domain}")
            return cached

        async with self._domain_locks.hold(domain):
            cached = self._domain_cache.get(domain)
            if cached is not None:
                return cached

            results = await asyncio.gather(
                *(self._with_timeout(p.name, p.lookup(domain)) for p in self.domain_providers),
                return_exceptions=True
            )

            failures = [r for r in results if isinstance(r, Exception)]
            if failures:
                raise ThreatLookupError(
                    f"Reputation lookup for {domain} failed: {failures[0]}"
                ) from failures[0]

            report = self._build_report(domain, results)
            self._domain_cache.set(domain, report, report.last_checked)
            return report

    async def analyze_email_sender(self, email: str) -> SenderReputation:
        """Authentication posture of the sender's domain (cached per address)"""
        key = email.strip().lower()

        cached = self._sender_cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for sender: {key}")
            return cached

        async with self._sender_locks.hold(key):
            cached = self._sender_cache.get(key)
            if cached is not None:
                return cached

            try:
                result = await self._with_timeout(
                    self.sender_provider.name, self.sender_provider.lookup(email)
                )
            except Exception as e:
                raise ThreatLookupError(f"Sender lookup for {email} failed: {e}") from e

            self._sender_cache.set(key, result)
            return result

    async def _with_timeout(self, source: str, lookup):
        try:
            return await asyncio.wait_for(lookup, timeout=self.lookup_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{source} lookup timed out after {self.lookup_timeout}s")
            raise

    def _build_report(self, domain: str, results: List[ReputationResult]) -> DomainReputation:
        """Merge provider verdicts into one domain reputation"""
        categories: List[str] = []
        for result in results:
            for category in result.categories:
                if category not in categories:
                    categories.append(category)

        scores = [r.reputation_score for r in results if r.reputation_score is not None]

        return DomainReputation(
            domain=domain,
            malicious=any(r.malicious for r in results),
            suspicious=any(r.suspicious for r in results),
            reputation_score=min(scores) if scores else 100,
            categories=tuple(categories),
            reported_times=max((r.reported_times for r in results), default=0),
            sources=tuple(r.source for r in results if r.malicious or r.suspicious),
            last_checked=self.clock(),
        )

    def purge_expired(self) -> int:
        """Drop expired entries from both caches; returns how many were removed"""
        return self._domain_cache.purge_expired() + self._sender_cache.purge_expired()

    def clear_cache(self) -> None:
        self._domain_cache.clear()
        self._sender_cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        """Return cache sizes and lookup configuration"""
        return {
            "domain_entries": len(self._domain_cache),
            "sender_entries": len(self._sender_cache),
            "ttl_hours": self._domain_cache.ttl.total_seconds() / 3600,
            "lookup_timeout_seconds": self.lookup_timeout,
            "domain_providers": [p.name for p in self.domain_providers],
            "sender_provider": self.sender_provider.name,
            "pending_lookups": len(self._domain_locks) + len(self._sender_locks),
        }
