"""Service wiring - builds the shared components from Settings.

Every request handler shares one set of services created at startup:
cache store, backend client, analytics recorder, geolocator, session
registry and the proxy core using them. Components without a configured
URL fall back to their in-memory implementations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis

from search_proxy.analytics.recorder import AnalyticsRecorder
from search_proxy.analytics.store import (
    AnalyticsStoreProtocol,
    InMemoryDocumentStore,
    MongoAnalyticsStore,
)
from search_proxy.cache.memory import InMemoryCacheClient
from search_proxy.cache.store import CacheStore
from search_proxy.clients.backend import FunnelbackClient, SearchBackendProtocol
from search_proxy.core.config import Settings
from search_proxy.core.logging import get_logger
from search_proxy.enrichment.geo import GeoLocator
from search_proxy.proxy.core import ProxyCore
from search_proxy.sessions.registry import SessionRegistry


logger = get_logger(__name__)


@dataclass
class Services:
    """Process-wide components shared by all requests."""

    settings: Settings
    cache: CacheStore
    backend: SearchBackendProtocol
    analytics_store: AnalyticsStoreProtocol
    recorder: AnalyticsRecorder
    geo: GeoLocator
    sessions: SessionRegistry
    core: ProxyCore

    async def start(self) -> None:
        """Start background workers and prepare the document store."""
        if isinstance(self.analytics_store, MongoAnalyticsStore):
            await self.analytics_store.ensure_indexes()
        await self.recorder.start()

    async def close(self) -> None:
        """Drain analytics and release every connection."""
        await self.core.wait_for_pending()
        await self.recorder.stop()
        await self.backend.close()
        await self.geo.close()
        await self.cache.close()
        close_store = getattr(self.analytics_store, "close", None)
        if close_store is not None:
            await close_store()


def build_cache_instances(settings: Settings) -> dict[str, Any]:
    """Create one cache client per configured version.

    Redis URLs come from settings. With no URL configured at all, both
    versions are served from memory so rotation still works locally.
    """
    configured = {version: url for version, url in settings.cache_urls.items() if url}
    if not configured:
        logger.warning("No cache URLs configured, using in-memory cache instances")
        return {version: InMemoryCacheClient() for version in settings.cache_urls}
    return {version: aioredis.from_url(url) for version, url in configured.items()}


def build_analytics_store(settings: Settings) -> AnalyticsStoreProtocol:
    if settings.mongodb_uri is None:
        logger.warning("MongoDB not configured, analytics kept in memory")
        return InMemoryDocumentStore()
    return MongoAnalyticsStore.from_uri(
        settings.mongodb_uri.get_secret_value(),
        database=settings.mongodb_database,
        collection=settings.mongodb_collection,
        timeout_ms=int(settings.analytics_timeout_seconds * 1000),
    )


def build_services(
    settings: Settings,
    *,
    cache_instances: dict[str, Any] | None = None,
    backend: SearchBackendProtocol | None = None,
    analytics_store: AnalyticsStoreProtocol | None = None,
    geo: GeoLocator | None = None,
) -> Services:
    """Build the service graph.

    Keyword arguments replace the component built from settings, which is
    how tests inject fakes.
    """
    cache = CacheStore(
        cache_instances if cache_instances is not None else build_cache_instances(settings),
        active_version=settings.cache_active_version,
        timeout_seconds=settings.cache_timeout_seconds,
    )
    if backend is None:
        backend = FunnelbackClient(
            settings.backend_base_url,
            timeout=settings.backend_timeout_seconds,
            timeout_status=settings.backend_timeout_status,
        )
    if analytics_store is None:
        analytics_store = build_analytics_store(settings)
    recorder = AnalyticsRecorder(
        analytics_store,
        queue_size=settings.analytics_queue_size,
        max_attempts=settings.analytics_max_attempts,
        backoff_seconds=settings.analytics_backoff_seconds,
        timeout_seconds=settings.analytics_timeout_seconds,
        drain_timeout_seconds=settings.analytics_drain_timeout_seconds,
    )
    if geo is None:
        geo = GeoLocator(
            settings.geo_lookup_url,
            timeout=settings.geo_timeout_seconds,
            lookup_enabled=settings.geo_lookup_enabled,
        )
    sessions = SessionRegistry()
    core = ProxyCore(
        cache,
        backend,
        recorder,
        geo,
        sessions,
        backend_timeout=settings.backend_timeout_seconds,
        timeout_status=settings.backend_timeout_status,
    )
    logger.info(
        "Services built",
        cache_versions=cache.versions,
        active_version=cache.active_version,
        analytics_store=type(analytics_store).__name__,
    )
    return Services(
        settings=settings,
        cache=cache,
        backend=backend,
        analytics_store=analytics_store,
        recorder=recorder,
        geo=geo,
        sessions=sessions,
        core=core,
    )
