"""Cache key builder for normalized query identity.

Keys have the shape ``{version}:{endpoint}:{digest}`` where ``digest`` is
derived from the normalized query parameters, so two requests that differ
only in parameter order, query casing or whitespace share one entry.
"""

import hashlib
import json
import re
from collections.abc import Mapping
from typing import Any


# Queries shorter than this are never looked up or stored
MIN_QUERY_LENGTH: int = 3

# Parameters that never take part in cache identity
IGNORED_PARAMS: frozenset[str] = frozenset({
    "sessionId",
    "_",
    "callback",
    "clientTimestamp",
})

# Parameters carrying the user's query text; the backend matches them
# case-insensitively
QUERY_PARAMS: tuple[str, ...] = ("query", "partial_query")

DIGEST_LENGTH: int = 32

_WHITESPACE = re.compile(r"\s+")


def first_value(value: Any) -> Any:
    """Return the first entry of a repeated parameter, or the value itself."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def extract_query_text(params: Mapping[str, Any]) -> str:
    """Return the stripped query text of a request.

    Args:
        params: Request query parameters

    Returns:
        Query text from ``query``, falling back to ``partial_query``;
        empty string when neither is present
    """
    for name in QUERY_PARAMS:
        value = first_value(params.get(name))
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def is_cacheable_query(params: Mapping[str, Any]) -> bool:
    """Check whether a request is long enough to use the cache.

    Args:
        params: Request query parameters

    Returns:
        True if the query text has at least MIN_QUERY_LENGTH characters
    """
    return len(extract_query_text(params)) >= MIN_QUERY_LENGTH


def _normalize_query(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip()).casefold()


def normalize_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize request parameters into their cache identity.

    - Drops IGNORED_PARAMS and empty values
    - Case-folds and collapses whitespace in query text
    - Sorts list values and stringifies scalars
    - Orders keys

    Args:
        params: Request query parameters

    Returns:
        Ordered dictionary of normalized parameters
    """
    normalized: dict[str, Any] = {}
    for name in sorted(params):
        if name in IGNORED_PARAMS:
            continue
        value = params[name]
        if value is None or value == "" or value == []:
            continue
        if isinstance(value, (list, tuple)):
            if name in QUERY_PARAMS:
                normalized[name] = sorted(_normalize_query(str(item)) for item in value)
            else:
                normalized[name] = sorted(str(item) for item in value)
        elif name in QUERY_PARAMS:
            normalized[name] = _normalize_query(str(value))
        else:
            normalized[name] = str(value)
    return normalized


def build_cache_key(version: str, endpoint: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic cache key.

    Args:
        version: Cache instance version (e.g. "v1")
        endpoint: Endpoint identifier (e.g. "suggest")
        params: Request query parameters

    Returns:
        Cache key: "{version}:{endpoint}:{digest}"

    Raises:
        ValueError: If version or endpoint is empty

    Example:
        >>> a = build_cache_key("v1", "suggest", {"partial_query": "Bio", "collection": "c"})
        >>> b = build_cache_key("v1", "suggest", {"collection": "c", "partial_query": "bio"})
        >>> a == b
        True
    """
    if not version:
        raise ValueError("version cannot be empty")
    if not endpoint:
        raise ValueError("endpoint cannot be empty")

    canonical = json.dumps(
        normalize_params(params),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
    return f"{version}:{endpoint}:{digest}"
