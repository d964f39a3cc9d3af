"""ProxyCore - per-request orchestration of cache, backend and analytics.

State machine per request::

    START -> CACHE_LOOKUP -> HIT  ------------------------------> RESPOND
                          -> MISS -> BACKEND_CALL -> SUCCESS -> CACHE_STORE -> RESPOND
                                                  -> FAILURE -> ERROR_RESPOND
          -> ANALYTICS_RECORD (always, detached) -> END

Only backend failures shape the response. Cache, geolocation and analytics
problems are absorbed by their components.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from search_proxy.analytics.models import AnalyticsRecord, EnrichmentData
from search_proxy.analytics.recorder import AnalyticsRecorder
from search_proxy.cache.keys import extract_query_text, first_value, is_cacheable_query
from search_proxy.cache.store import CacheStore
from search_proxy.clients.backend import SearchBackendProtocol
from search_proxy.core.constants import Timeouts
from search_proxy.core.exceptions import BackendFailureError, BackendTimeoutError
from search_proxy.core.logging import get_logger, request_context
from search_proxy.enrichment.geo import GeoLocator
from search_proxy.proxy.endpoints import EndpointDefinition
from search_proxy.proxy.tabs import classify_tabs
from search_proxy.sessions.registry import SessionRegistry


logger = get_logger(__name__)


class CacheStatus(str, Enum):
    """How the cache took part in a request."""

    HIT = "HIT"
    MISS = "MISS"
    BYPASS = "BYPASS"  # query too short to cache


@dataclass
class ProxyRequest:
    """One inbound request as seen by the core.

    Attributes:
        endpoint: Endpoint being served
        params: Client query parameters
        headers: Request headers (any casing)
        client_ip: Originating client IP (forwarded to the backend, never stored)
        session_id: Session id sent by the client, if any
        enrichment: Optional hook deriving enrichmentData from the payload
    """

    endpoint: EndpointDefinition
    params: Mapping[str, Any]
    headers: Mapping[str, str] = field(default_factory=dict)
    client_ip: str | None = None
    session_id: str | None = None
    enrichment: Callable[[Any], EnrichmentData] | None = None


@dataclass
class ProxyResult:
    """Decided response of a request.

    Attributes:
        status_code: HTTP status for the client
        payload: Backend payload, or a generic error payload
        session_id: Session id the client should keep
        cache_status: HIT, MISS or BYPASS
        error_cause: "upstream_timeout" / "upstream_error" on failure
        elapsed_ms: Time to decide the response
    """

    status_code: int
    payload: Any
    session_id: str
    cache_status: CacheStatus
    error_cause: str | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error_cause is None

    @property
    def cache_hit(self) -> bool:
        return self.cache_status is CacheStatus.HIT


def count_results(payload: Any) -> int:
    """Count results in a backend payload.

    Handles suggestion lists and Funnelback result packets; anything else
    counts as zero.
    """
    if isinstance(payload, list):
        return len(payload)
    if not isinstance(payload, dict):
        return 0
    packet = (payload.get("response") or {}).get("resultPacket") or {}
    results = packet.get("results")
    if isinstance(results, list):
        return len(results)
    total = (packet.get("resultsSummary") or {}).get("totalMatching")
    return total if isinstance(total, int) else 0


class ProxyCore:
    """Serves proxied requests through the shared cache and analytics.

    Example:
        >>> core = ProxyCore(cache, backend, recorder, geo, sessions)
        >>> result = await core.handle(ProxyRequest(SUGGEST, {"partial_query": "bio"}))
        >>> result.cache_status
        <CacheStatus.MISS: 'MISS'>
    """

    def __init__(
        self,
        cache: CacheStore,
        backend: SearchBackendProtocol,
        recorder: AnalyticsRecorder,
        geo: GeoLocator,
        sessions: SessionRegistry,
        backend_timeout: float = Timeouts.BACKEND,
        timeout_status: int = 500,
    ) -> None:
        """Initialize the core.

        Args:
            cache: Versioned response cache
            backend: Search backend client
            recorder: Analytics recorder
            geo: Location resolver
            sessions: Session id registry
            backend_timeout: Upper bound on a backend call in seconds
            timeout_status: Status returned when the backend times out
        """
        self._cache = cache
        self._backend = backend
        self._recorder = recorder
        self._geo = geo
        self._sessions = sessions
        self._backend_timeout = backend_timeout
        self._timeout_status = timeout_status
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_analytics(self) -> int:
        return len(self._pending)

    async def handle(self, request: ProxyRequest) -> ProxyResult:
        """Serve one request.

        Args:
            request: Inbound request

        Returns:
            ProxyResult; backend failures are reported in it, never raised
        """
        started = time.perf_counter()
        endpoint = request.endpoint
        session_id = self._sessions.ensure(request.session_id)
        params = endpoint.build_params(request.params)

        with request_context(endpoint=endpoint.name, session_id=session_id):
            result: ProxyResult | None = None
            cache_status = CacheStatus.MISS if is_cacheable_query(params) else CacheStatus.BYPASS

            if cache_status is CacheStatus.MISS:
                cached = await self._cache.get(endpoint.name, params)
                if cached is not None:
                    result = ProxyResult(
                        status_code=200,
                        payload=cached,
                        session_id=session_id,
                        cache_status=CacheStatus.HIT,
                    )

            if result is None:
                result = await self._call_backend(request, params, session_id, cache_status)

            result.elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.info(
                "Proxy request handled",
                status=result.status_code,
                cache=result.cache_status.value,
                elapsed_ms=result.elapsed_ms,
                error_cause=result.error_cause,
            )

            self._schedule_analytics(request, params, result)
        return result

    async def _call_backend(
        self,
        request: ProxyRequest,
        params: dict[str, Any],
        session_id: str,
        cache_status: CacheStatus,
    ) -> ProxyResult:
        endpoint = request.endpoint
        try:
            response = await self._fetch(endpoint, params, request.client_ip)
        except BackendFailureError as e:
            logger.error(
                "Backend call failed",
                cause=e.cause,
                status=e.status_code,
                error=str(e),
            )
            return ProxyResult(
                status_code=e.status_code,
                payload={"error": endpoint.error_label, "cause": e.cause},
                session_id=session_id,
                cache_status=cache_status,
                error_cause=e.cause,
            )

        if cache_status is CacheStatus.MISS:
            await self._cache.set(endpoint.name, params, response.payload, endpoint.category)

        return ProxyResult(
            status_code=response.status_code,
            payload=response.payload,
            session_id=session_id,
            cache_status=cache_status,
        )

    async def _fetch(self, endpoint: EndpointDefinition, params: dict[str, Any], client_ip: str | None) -> Any:
        """Call the backend under the request timeout.

        Raises:
            BackendTimeoutError: When the timeout expires
            BackendFailureError: On any other backend failure
        """
        try:
            return await asyncio.wait_for(
                self._backend.fetch(endpoint.path, params, client_ip),
                timeout=self._backend_timeout,
            )
        except asyncio.TimeoutError as e:
            raise BackendTimeoutError(
                f"backend {endpoint.path} exceeded {self._backend_timeout}s",
                timeout_seconds=self._backend_timeout,
                status_code=self._timeout_status,
            ) from e

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def _schedule_analytics(
        self,
        request: ProxyRequest,
        params: dict[str, Any],
        result: ProxyResult,
    ) -> None:
        task = asyncio.create_task(self._record(request, params, result))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record(
        self,
        request: ProxyRequest,
        params: dict[str, Any],
        result: ProxyResult,
    ) -> None:
        try:
            headers = {str(name).lower(): value for name, value in request.headers.items()}
            location = await self._geo.resolve(request.client_ip, headers)
            tabs = classify_tabs(params)
            result_count = count_results(result.payload) if result.ok else 0

            record = AnalyticsRecord(
                handler=request.endpoint.name,
                query=extract_query_text(params),
                search_collection=first_value(params.get("collection")),
                session_id=result.session_id,
                user_agent=headers.get("user-agent"),
                referer=headers.get("referer"),
                response_time=result.elapsed_ms,
                result_count=result_count,
                has_results=result_count > 0,
                cache_hit=result.cache_hit,
                error=result.error_cause,
                is_program_tab=tabs.is_program_tab,
                is_staff_tab=tabs.is_staff_tab,
                tabs=tabs.tabs,
                enrichment_data=self._enrichment(request, result),
            ).with_location(location.model_dump())

            await self._recorder.record_query(record)
        except Exception:
            logger.exception("Analytics recording failed", endpoint=request.endpoint.name)

    def _enrichment(self, request: ProxyRequest, result: ProxyResult) -> EnrichmentData:
        if request.enrichment is None or not result.ok:
            return {}
        try:
            return dict(request.enrichment(result.payload))
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            logger.warning("Enrichment hook failed", endpoint=request.endpoint.name, error=str(e))
            return {}

    async def wait_for_pending(self) -> None:
        """Wait for detached analytics tasks (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
