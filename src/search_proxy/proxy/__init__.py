"""Proxy package - request orchestration and endpoint registry."""

from search_proxy.proxy.core import (
    CacheStatus,
    ProxyCore,
    ProxyRequest,
    ProxyResult,
    count_results,
)
from search_proxy.proxy.endpoints import (
    ENDPOINTS,
    SEARCH,
    SUGGEST,
    SUGGEST_PEOPLE,
    SUGGEST_PROGRAMS,
    EndpointDefinition,
    get_endpoint,
)
from search_proxy.proxy.suggestions import (
    enrich_suggestions,
    people_enrichment,
    people_suggestions,
    program_enrichment,
    program_suggestions,
)
from search_proxy.proxy.tabs import TabFacts, classify_tabs


__all__ = [
    "ENDPOINTS",
    "SEARCH",
    "SUGGEST",
    "SUGGEST_PEOPLE",
    "SUGGEST_PROGRAMS",
    "CacheStatus",
    "EndpointDefinition",
    "ProxyCore",
    "ProxyRequest",
    "ProxyResult",
    "TabFacts",
    "classify_tabs",
    "count_results",
    "enrich_suggestions",
    "get_endpoint",
    "people_enrichment",
    "people_suggestions",
    "program_enrichment",
    "program_suggestions",
]
