"""Shared fixtures for PhishShield tests."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from phishshield.core.analyzer import PhishingAnalyzer
from phishshield.core.threat_intel import ThreatIntelligence


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def intel(clock, rng):
    return ThreatIntelligence(clock=clock, rng=rng)


@pytest.fixture()
def lookup_errors():
    return []


@pytest.fixture()
def analyzer(intel, lookup_errors):
    def record(check, target, error):
        lookup_errors.append((check, target, error))

    return PhishingAnalyzer(intel, on_lookup_error=record)


@pytest.fixture()
def client():
    """TestClient with startup run and rate limiting off."""
    from fastapi.testclient import TestClient

    from main import app
    from phishshield.api.routes import scan

    scan.limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    scan.limiter.enabled = True
