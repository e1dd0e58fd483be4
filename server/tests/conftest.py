"""Shared test fixtures for the incident enrichment test suite."""

import sys
import os

import pytest

# Ensure server/ is on sys.path so ``services.*`` imports resolve.
_server_dir = os.path.join(os.path.dirname(__file__), os.pardir)
if os.path.abspath(_server_dir) not in sys.path:
    sys.path.insert(0, os.path.abspath(_server_dir))

from config.incident_enrichment import IncidentEnrichmentSettings  # noqa: E402
from services.incident_enrichment.cache_store import InMemoryCacheStore  # noqa: E402
from services.incident_enrichment.enrichment_filter import (  # noqa: E402
    IncidentEnrichmentFilter,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def memory_store(clock):
    """In-memory cache store driven by the fake clock."""
    return InMemoryCacheStore(clock=clock)


# ---------------------------------------------------------------------------
# Filter fixtures
# ---------------------------------------------------------------------------

DEFAULT_FIELDS = ["src_ip", "dst_ip", "src", "src_port", "dst_port"]


@pytest.fixture()
def make_settings():
    """Factory for settings with test defaults; keyword overrides win."""

    def _make(**overrides):
        data = {
            "incident_fields": list(DEFAULT_FIELDS),
            "source": "Intrusion",
            "minimum_priority": "high",
            "cache_expiration": 600,
            "cache_backend_address": ["localhost:6379"],
        }
        data.update(overrides)
        return IncidentEnrichmentSettings(**data)

    return _make


@pytest.fixture()
def make_filter(make_settings, memory_store):
    """Factory returning a registered filter backed by ``memory_store``."""

    def _make(store=None, **overrides):
        enrichment_filter = IncidentEnrichmentFilter(
            make_settings(**overrides),
            store=store if store is not None else memory_store,
        )
        return enrichment_filter.register()

    return _make
