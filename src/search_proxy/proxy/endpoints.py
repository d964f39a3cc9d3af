"""Endpoint registry - backend path, cache category and fixed parameters.

``defaults`` fill parameters the client did not send; ``overrides`` always
win. Both are applied before the cache key is derived so the key reflects
exactly what the backend is asked.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from search_proxy.cache.tiers import CacheCategory
from search_proxy.core.constants import (
    COLLECTION_PROGRAMS,
    COLLECTION_SITE,
    COLLECTION_STAFF,
    DEFAULT_PROFILE,
)


@dataclass(frozen=True)
class EndpointDefinition:
    """Static description of one proxied endpoint.

    Attributes:
        name: Endpoint identifier used in cache keys and analytics
        path: Backend path
        category: Cache category (TTL tier)
        error_label: Generic message returned on backend failure
        defaults: Parameters applied when absent
        overrides: Parameters always applied
    """

    name: str
    path: str
    category: CacheCategory
    error_label: str = "Search error"
    defaults: Mapping[str, Any] = field(default_factory=dict)
    overrides: Mapping[str, Any] = field(default_factory=dict)

    def build_params(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Merge client params with endpoint defaults and overrides."""
        merged: dict[str, Any] = dict(self.defaults)
        merged.update(params)
        merged.update(self.overrides)
        return merged

    @property
    def collection(self) -> str | None:
        return self.overrides.get("collection") or self.defaults.get("collection")


SEARCH = EndpointDefinition(
    name="search",
    path="/s/search.html",
    category=CacheCategory.DEFAULT,
    defaults={"collection": COLLECTION_SITE, "profile": DEFAULT_PROFILE},
    overrides={"form": "json"},
)

SUGGEST = EndpointDefinition(
    name="suggest",
    path="/s/suggest.json",
    category=CacheCategory.SUGGESTION,
    error_label="Suggestion error",
    defaults={"collection": COLLECTION_SITE, "profile": DEFAULT_PROFILE, "form": "partial"},
)

SUGGEST_PROGRAMS = EndpointDefinition(
    name="suggest-programs",
    path="/s/search.html",
    category=CacheCategory.PROGRAM,
    overrides={
        "collection": COLLECTION_PROGRAMS,
        "num_ranks": 5,
        "sort": "title",
        "profile": DEFAULT_PROFILE,
        "form": "json",
    },
)

SUGGEST_PEOPLE = EndpointDefinition(
    name="suggest-people",
    path="/s/search.html",
    category=CacheCategory.PEOPLE,
    overrides={
        "collection": COLLECTION_STAFF,
        "num_ranks": 5,
        "profile": DEFAULT_PROFILE,
        "form": "json",
    },
)

ENDPOINTS: dict[str, EndpointDefinition] = {
    spec.name: spec for spec in (SEARCH, SUGGEST, SUGGEST_PROGRAMS, SUGGEST_PEOPLE)
}


def get_endpoint(name: str) -> EndpointDefinition:
    """Look up an endpoint by name.

    Raises:
        KeyError: If the endpoint is not registered
    """
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"Unknown endpoint '{name}'. Registered: {', '.join(sorted(ENDPOINTS))}") from None
