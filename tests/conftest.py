"""Test configuration and shared fixtures."""

import pytest

from search_proxy.analytics.recorder import AnalyticsRecorder
from search_proxy.analytics.store import InMemoryDocumentStore
from search_proxy.cache.memory import InMemoryCacheClient
from search_proxy.cache.store import CacheStore
from search_proxy.core.config import Settings
from search_proxy.enrichment.geo import GeoLocator
from search_proxy.sessions.registry import SessionRegistry
from tests.fakes.fake_clients import FakeBackendClient


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults (no external services)."""
    return Settings(
        environment="testing",
        log_level="DEBUG",
        cache_v1_url=None,
        cache_v2_url=None,
        mongodb_uri=None,
        geo_lookup_enabled=False,
        analytics_backoff_seconds=0,
        analytics_drain_timeout_seconds=2.0,
        admin_token=None,
    )


# ============================================================================
# Component Fixtures
# ============================================================================

@pytest.fixture
def cache_clients() -> dict[str, InMemoryCacheClient]:
    return {"v1": InMemoryCacheClient(), "v2": InMemoryCacheClient()}


@pytest.fixture
def cache_store(cache_clients: dict[str, InMemoryCacheClient]) -> CacheStore:
    return CacheStore(cache_clients, active_version="v1")


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def recorder(document_store: InMemoryDocumentStore) -> AnalyticsRecorder:
    return AnalyticsRecorder(document_store, backoff_seconds=0, timeout_seconds=1.0)


@pytest.fixture
def geo_locator() -> GeoLocator:
    """Locator that only reads edge headers."""
    return GeoLocator(lookup_enabled=False)


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def fake_backend() -> FakeBackendClient:
    return FakeBackendClient()
