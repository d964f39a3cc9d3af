"""Cache package - versioned, TTL-tiered response cache.

Key layout: ``{version}:{endpoint}:{digest}``
- version:  active cache instance (v1/v2), switched by rotation
- endpoint: proxy endpoint identifier
- digest:   hash of the normalized query parameters
"""

from search_proxy.cache.keys import (
    IGNORED_PARAMS,
    MIN_QUERY_LENGTH,
    build_cache_key,
    extract_query_text,
    first_value,
    is_cacheable_query,
    normalize_params,
)
from search_proxy.cache.memory import InMemoryCacheClient
from search_proxy.cache.store import (
    CacheClientProtocol,
    CacheInstanceRef,
    CacheStore,
)
from search_proxy.cache.tiers import CACHE_TTL_SECONDS, CacheCategory, ttl_for


__all__ = [
    "CACHE_TTL_SECONDS",
    "IGNORED_PARAMS",
    "MIN_QUERY_LENGTH",
    "CacheCategory",
    "CacheClientProtocol",
    "CacheInstanceRef",
    "CacheStore",
    "InMemoryCacheClient",
    "build_cache_key",
    "extract_query_text",
    "first_value",
    "is_cacheable_query",
    "normalize_params",
    "ttl_for",
]
