"""
Startup initialization logic
Builds the threat intelligence cache, analyzer, scan history and protection
settings on app state
"""

import logging
import random
from collections import Counter
from datetime import timedelta

from fastapi import FastAPI, Request

from phishshield.core.analyzer import PhishingAnalyzer
from phishshield.core.config import Settings, settings
from phishshield.core.indicators import load_indicator_config
from phishshield.core.threat_intel import (
    KeywordReputationProvider,
    MockSenderAuthProvider,
    PhishingDatabaseProvider,
    ThreatIntelligence,
)
from phishshield.services.message_store import MessageStore
from phishshield.services.protection_settings import ProtectionSettingsStore

logger = logging.getLogger(__name__)


def build_analyzer(config: Settings, lookup_failures: Counter) -> PhishingAnalyzer:
    """Create the analyzer and its threat intelligence cache from settings"""
    indicator_config = load_indicator_config(config.INDICATOR_CONFIG_FILE)
    rng = random.Random(config.THREAT_INTEL_RANDOM_SEED)

    intelligence = ThreatIntelligence(
        domain_providers=[
            KeywordReputationProvider(rng),
            PhishingDatabaseProvider(indicator_config.known_phishing_domains),
        ],
        sender_provider=MockSenderAuthProvider(rng),
        rng=rng,
        cache_ttl=timedelta(hours=config.THREAT_INTEL_CACHE_TTL_HOURS),
        lookup_timeout=config.THREAT_INTEL_LOOKUP_TIMEOUT_SECONDS,
    )

    def record_failure(check: str, target: str, error: Exception) -> None:
        lookup_failures[check] += 1

    return PhishingAnalyzer(intelligence, indicator_config, on_lookup_error=record_failure)


def build_protection_settings() -> ProtectionSettingsStore:
    """Settings store seeded with the default toggles"""
    store = ProtectionSettingsStore()
    store.create_settings()
    return store


async def initialize_system(app: FastAPI, config: Settings = settings):
    """
    Initialize system components on startup

    Args:
        app: FastAPI application instance
        config: settings to build components from
    """
    try:
        logger.info("[1/3] Building threat intelligence cache...")
        app.state.lookup_failures = Counter()
        app.state.analyzer = build_analyzer(config, app.state.lookup_failures)

        logger.info("[2/3] Creating scan history...")
        app.state.message_store = MessageStore()

        logger.info("[3/3] Loading protection settings...")
        app.state.protection_settings = build_protection_settings()

        stats = app.state.analyzer.intelligence.get_cache_stats()
        logger.info(
            f"Threat intelligence ready: providers={stats['domain_providers']}, "
            f"ttl={stats['ttl_hours']}h, timeout={stats['lookup_timeout_seconds']}s"
        )
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise


def ensure_initialized(app: FastAPI) -> None:
    """Build components on first use when startup events did not run"""
    if getattr(app.state, "analyzer", None) is None:
        logger.info("Initializing components lazily")
        app.state.lookup_failures = Counter()
        app.state.analyzer = build_analyzer(settings, app.state.lookup_failures)
    if getattr(app.state, "message_store", None) is None:
        app.state.message_store = MessageStore()
    if getattr(app.state, "protection_settings", None) is None:
        app.state.protection_settings = build_protection_settings()


def get_analyzer(request: Request) -> PhishingAnalyzer:
    """Request dependency returning the shared analyzer"""
    ensure_initialized(request.app)
    return request.app.state.analyzer


def get_message_store(request: Request) -> MessageStore:
    """Request dependency returning the shared scan history"""
    ensure_initialized(request.app)
    return request.app.state.message_store


def get_protection_settings_store(request: Request) -> ProtectionSettingsStore:
    """Request dependency returning the shared protection settings"""
    ensure_initialized(request.app)
    return request.app.state.protection_settings


def get_init_status(app: FastAPI) -> dict:
    """Get current component status"""
    analyzer = getattr(app.state, "analyzer", None)
    failures = getattr(app.state, "lookup_failures", Counter())
    store = getattr(app.state, "message_store", None)
    return {
        "initialized": analyzer is not None,
        "cache": analyzer.intelligence.get_cache_stats() if analyzer else None,
        "lookup_failures": dict(failures),
        "history_size": len(store) if store is not None else 0,
    }
