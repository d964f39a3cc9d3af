"""Funnelback search backend HTTP client.

Thin async wrapper over httpx. It applies the request timeout and
translates transport failures into BackendFailureError /
BackendTimeoutError; it does not interpret the result packets.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from search_proxy.core.constants import Timeouts
from search_proxy.core.exceptions import BackendFailureError, BackendTimeoutError
from search_proxy.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class BackendResponse:
    """Decoded backend response.

    Attributes:
        status_code: HTTP status returned by the backend
        payload: Decoded JSON body
    """

    status_code: int
    payload: Any


@runtime_checkable
class SearchBackendProtocol(Protocol):
    """Protocol for search backend clients (enables fakes in tests)."""

    async def fetch(
        self,
        path: str,
        params: Mapping[str, Any],
        client_ip: str | None = None,
    ) -> BackendResponse:
        """Call a backend path and return the decoded JSON."""
        ...

    async def close(self) -> None:
        """Release HTTP resources."""
        ...


class FunnelbackClient:
    """HTTP client for the Funnelback search service.

    Uses a single lazily created httpx.AsyncClient for connection pooling.

    Attributes:
        base_url: Funnelback base URL
        timeout: Request timeout in seconds
        timeout_status: Status reported when the timeout fires

    Example:
        >>> client = FunnelbackClient("https://dxp-us-search.funnelback.squiz.cloud")
        >>> response = await client.fetch("/s/suggest.json", {"partial_query": "bio"})
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = Timeouts.BACKEND,
        timeout_status: int = 500,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Funnelback base URL
            timeout: Request timeout in seconds
            timeout_status: HTTP status reported on timeout
        """
        self.base_url = base_url
        self.timeout = timeout
        self.timeout_status = timeout_status
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        path: str,
        params: Mapping[str, Any],
        client_ip: str | None = None,
    ) -> BackendResponse:
        """Call a backend path.

        Args:
            path: Backend path (e.g. "/s/search.html")
            params: Query parameters forwarded to the backend
            client_ip: Originating client, sent as X-Forwarded-For

        Returns:
            BackendResponse with the decoded JSON body

        Raises:
            BackendTimeoutError: When the request exceeds the timeout
            BackendFailureError: On non-2xx, network error or invalid JSON
        """
        client = await self._get_client()
        headers = {"X-Forwarded-For": client_ip} if client_ip else None

        try:
            response = await client.get(path, params=dict(params), headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(
                "Backend request timed out",
                path=path,
                timeout=self.timeout,
            )
            raise BackendTimeoutError(
                f"backend {path} timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                status_code=self.timeout_status,
            ) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Backend returned error status",
                path=path,
                status=e.response.status_code,
                detail=e.response.text[:200],
            )
            raise BackendFailureError(
                f"backend {path} returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error("Backend request failed", path=path, error=str(e))
            raise BackendFailureError(f"backend {path} request failed: {e}") from e
        except ValueError as e:
            logger.error("Backend returned invalid JSON", path=path, error=str(e))
            raise BackendFailureError(f"backend {path} returned invalid JSON") from e

        return BackendResponse(status_code=response.status_code, payload=payload)
