"""Reshaping of backend payloads into suggestion lists.

The frontend autocomplete consumes ``[{display, metadata}]`` for all three
suggestion endpoints. Raw payloads stay in the cache; reshaping runs on
every response.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from search_proxy.analytics.models import EnrichmentData
from search_proxy.proxy.tabs import classify_tabs


def _results(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    packet = (payload.get("response") or {}).get("resultPacket") or {}
    results = packet.get("results")
    return [result for result in results if isinstance(result, dict)] if isinstance(results, list) else []


def _display(suggestion: Any) -> str:
    if isinstance(suggestion, dict):
        return str(suggestion.get("disp") or suggestion.get("key") or "")
    return str(suggestion)


def enrich_suggestions(payload: Any, params: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Attach tab metadata to autocomplete suggestions.

    Example:
        >>> enrich_suggestions(["biology"], {"f.Tabs|programMain": "Programs"})
        [{'display': 'biology', 'metadata': {'tabs': ['program-main']}}]
    """
    if not isinstance(payload, list):
        return []
    tabs = classify_tabs(params).tabs
    return [
        {"display": _display(suggestion), "metadata": {"tabs": list(tabs)}}
        for suggestion in payload
    ]


def program_suggestions(payload: Any) -> list[dict[str, Any]]:
    """Map program search results to suggestions."""
    suggestions = []
    for result in _results(payload):
        meta = result.get("metaData") or {}
        suggestions.append(
            {
                "display": result.get("title", ""),
                "metadata": {
                    "description": meta.get("description", ""),
                    "url": result.get("liveUrl", ""),
                    "level": meta.get("level", ""),
                    "department": meta.get("department", ""),
                },
            }
        )
    return suggestions


def people_suggestions(payload: Any) -> list[dict[str, Any]]:
    """Map staff directory results to suggestions."""
    suggestions = []
    for result in _results(payload):
        meta = result.get("metaData") or {}
        suggestions.append(
            {
                "display": result.get("title", ""),
                "metadata": {
                    "affiliation": meta.get("affiliation", ""),
                    "position": meta.get("position", ""),
                    "department": meta.get("department", ""),
                    "url": result.get("liveUrl", ""),
                    "image": meta.get("image", ""),
                },
            }
        )
    return suggestions


def program_enrichment(payload: Any) -> EnrichmentData:
    """Program facets recorded with program suggestion queries."""
    suggestions = program_suggestions(payload)
    return {
        "programs": [suggestion["display"] for suggestion in suggestions],
        "levels": sorted({s["metadata"]["level"] for s in suggestions if s["metadata"]["level"]}),
        "departments": sorted(
            {s["metadata"]["department"] for s in suggestions if s["metadata"]["department"]}
        ),
    }


def people_enrichment(payload: Any) -> EnrichmentData:
    suggestions = people_suggestions(payload)
    return {
        "people": [suggestion["display"] for suggestion in suggestions],
        "departments": sorted(
            {s["metadata"]["department"] for s in suggestions if s["metadata"]["department"]}
        ),
    }
