"""GeoLocator - best-effort client location enrichment.

Edge-provided geo headers are authoritative and cost nothing. When they
are absent the locator performs an IP lookup and caches the result for the
lifetime of the process. Resolution never raises; failures produce an
empty GeoResult.
"""

from __future__ import annotations

import asyncio
import ipaddress
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote

import httpx
from pydantic import BaseModel, ConfigDict

from search_proxy.core.constants import (
    HEADER_FORWARDED_FOR,
    HEADER_GEO_CITY,
    HEADER_GEO_COUNTRY,
    HEADER_GEO_LATITUDE,
    HEADER_GEO_LONGITUDE,
    HEADER_GEO_REGION,
    HEADER_GEO_TIMEZONE,
    HEADER_REAL_IP,
    Timeouts,
)
from search_proxy.core.exceptions import GeoResolutionError
from search_proxy.core.logging import get_logger


logger = get_logger(__name__)

DEFAULT_LOOKUP_URL = "http://ip-api.com/json/{ip}"
LOOKUP_FIELDS = "status,message,countryCode,region,city,timezone,lat,lon"


class GeoResult(BaseModel):
    """Resolved client location. Empty strings / None mean unknown."""

    model_config = ConfigDict(frozen=True)

    city: str = ""
    region: str = ""
    country: str = ""
    timezone: str = ""
    latitude: float | None = None
    longitude: float | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.city or self.region or self.country or self.timezone)


EMPTY_GEO_RESULT = GeoResult()


def _decode(value: str | None) -> str:
    if not value:
        return ""
    try:
        return unquote(value, errors="strict").strip()
    except UnicodeDecodeError:
        return value.strip()


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _lower_keys(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def extract_client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str | None:
    """Return the originating client IP of a request.

    Args:
        headers: Request headers
        fallback: Socket peer address

    Returns:
        First ``x-forwarded-for`` entry, else ``x-real-ip``, else fallback
    """
    lowered = _lower_keys(headers)
    forwarded = lowered.get(HEADER_FORWARDED_FOR, "")
    first = forwarded.split(",")[0].strip() if forwarded else ""
    if first:
        return first
    real_ip = lowered.get(HEADER_REAL_IP, "").strip()
    return real_ip or fallback


def geo_from_headers(headers: Mapping[str, str]) -> GeoResult | None:
    """Build a GeoResult from edge geo headers.

    Returns:
        GeoResult, or None when the edge supplied no location
    """
    lowered = _lower_keys(headers)
    city = _decode(lowered.get(HEADER_GEO_CITY))
    region = _decode(lowered.get(HEADER_GEO_REGION))
    country = _decode(lowered.get(HEADER_GEO_COUNTRY))
    if not (city or region or country):
        return None
    return GeoResult(
        city=city,
        region=region,
        country=country,
        timezone=_decode(lowered.get(HEADER_GEO_TIMEZONE)),
        latitude=_to_float(lowered.get(HEADER_GEO_LATITUDE)),
        longitude=_to_float(lowered.get(HEADER_GEO_LONGITUDE)),
    )


def is_public_ip(ip: str | None) -> bool:
    """Check whether an address is worth an external lookup."""
    if not ip:
        return False
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return address.is_global


class GeoLocator:
    """Resolves client IPs to locations.

    Attributes:
        lookup_url: IP lookup endpoint with an ``{ip}`` placeholder
        timeout: Lookup timeout in seconds
        lookup_enabled: When False only headers are used

    Example:
        >>> locator = GeoLocator()
        >>> result = await locator.resolve("203.0.113.9", request.headers)
        >>> result.city
        'Seattle'
    """

    def __init__(
        self,
        lookup_url: str = DEFAULT_LOOKUP_URL,
        timeout: float = Timeouts.GEO_LOOKUP,
        lookup_enabled: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the locator.

        Args:
            lookup_url: IP lookup endpoint with an ``{ip}`` placeholder
            timeout: Lookup timeout in seconds
            lookup_enabled: Allow active lookups when headers are absent
            client: Optional preconfigured HTTP client
        """
        self.lookup_url = lookup_url
        self.timeout = timeout
        self.lookup_enabled = lookup_enabled
        self._client = client
        self._cache: dict[str, GeoResult] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    async def resolve(
        self,
        client_ip: str | None,
        headers: Mapping[str, str] | None = None,
    ) -> GeoResult:
        """Resolve a client's location. Never raises.

        Args:
            client_ip: Originating client IP
            headers: Request headers that may carry edge geo metadata

        Returns:
            GeoResult, empty when nothing could be resolved
        """
        try:
            from_headers = geo_from_headers(headers or {})
            if from_headers is not None:
                return from_headers

            if not self.lookup_enabled or not is_public_ip(client_ip):
                return EMPTY_GEO_RESULT

            cached = self._cache.get(client_ip)
            if cached is not None:
                return cached

            result = await self._lookup(client_ip)
            self._cache[client_ip] = result
            return result
        except GeoResolutionError as e:
            logger.info("Geo lookup failed, continuing without location", error=str(e))
            return EMPTY_GEO_RESULT
        except Exception:
            logger.exception("Unexpected geo resolution failure")
            return EMPTY_GEO_RESULT

    async def _lookup(self, ip: str) -> GeoResult:
        """Query the IP lookup service.

        Raises:
            GeoResolutionError: On network error, non-2xx or failed lookup
        """
        client = await self._get_client()
        url = self.lookup_url.format(ip=ip)
        try:
            response = await client.get(url, params={"fields": LOOKUP_FIELDS})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise GeoResolutionError(f"lookup returned HTTP {e.response.status_code}", ip=ip) from e
        except (httpx.RequestError, asyncio.TimeoutError) as e:
            raise GeoResolutionError(f"lookup request failed: {type(e).__name__}", ip=ip) from e
        except ValueError as e:
            raise GeoResolutionError("lookup returned invalid JSON", ip=ip) from e

        if not isinstance(data, dict) or data.get("status") != "success":
            message = data.get("message", "unknown") if isinstance(data, dict) else "unexpected payload"
            raise GeoResolutionError(f"lookup unsuccessful: {message}", ip=ip)

        return GeoResult(
            city=_decode(data.get("city")),
            region=_decode(data.get("region")),
            country=_decode(data.get("countryCode")),
            timezone=_decode(data.get("timezone")),
            latitude=_to_float(data.get("lat")),
            longitude=_to_float(data.get("lon")),
        )
