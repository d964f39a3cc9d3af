"""Enrichment package - best-effort request metadata (location)."""

from search_proxy.enrichment.geo import (
    EMPTY_GEO_RESULT,
    GeoLocator,
    GeoResult,
    extract_client_ip,
    geo_from_headers,
)


__all__ = [
    "EMPTY_GEO_RESULT",
    "GeoLocator",
    "GeoResult",
    "extract_client_ip",
    "geo_from_headers",
]
