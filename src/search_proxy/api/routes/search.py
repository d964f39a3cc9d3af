"""Search and suggestion API routes.

Routes:
    GET /proxy/funnelback        - general search
    GET /proxy/suggest           - autocomplete with tab metadata
    GET /proxy/suggest-programs  - program suggestions
    GET /proxy/suggest-people    - faculty and staff suggestions

Handlers only translate HTTP to ProxyRequest and back; caching, backend
calls and analytics happen in ProxyCore.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from search_proxy.api.dependencies import client_ip, get_services, query_params, session_id
from search_proxy.container import Services
from search_proxy.core.constants import HEADER_CACHE_STATUS, HEADER_SESSION_ID, PROXY_PREFIX
from search_proxy.proxy.core import ProxyRequest, ProxyResult
from search_proxy.proxy.endpoints import (
    SEARCH,
    SUGGEST,
    SUGGEST_PEOPLE,
    SUGGEST_PROGRAMS,
    EndpointDefinition,
)
from search_proxy.proxy.suggestions import (
    enrich_suggestions,
    people_enrichment,
    people_suggestions,
    program_enrichment,
    program_suggestions,
)


router = APIRouter(
    prefix=PROXY_PREFIX,
    tags=["Search"],
)


async def _proxy(
    request: Request,
    services: Services,
    endpoint: EndpointDefinition,
    enrichment: Callable[[Any], dict[str, Any]] | None = None,
) -> ProxyResult:
    return await services.core.handle(
        ProxyRequest(
            endpoint=endpoint,
            params=query_params(request),
            headers=request.headers,
            client_ip=client_ip(request),
            session_id=session_id(request),
            enrichment=enrichment,
        )
    )


def _respond(result: ProxyResult, content: Any) -> JSONResponse:
    return JSONResponse(
        status_code=result.status_code,
        content=content if result.ok else result.payload,
        headers={
            HEADER_SESSION_ID: result.session_id,
            HEADER_CACHE_STATUS: result.cache_status.value,
        },
    )


@router.get("/funnelback")
async def search(request: Request, services: Services = Depends(get_services)) -> JSONResponse:
    """Proxy a general search request."""
    result = await _proxy(request, services, SEARCH)
    return _respond(result, result.payload)


@router.get("/suggest")
async def suggest(request: Request, services: Services = Depends(get_services)) -> JSONResponse:
    """Autocomplete suggestions enriched with the requesting tab."""
    result = await _proxy(request, services, SUGGEST)
    return _respond(result, enrich_suggestions(result.payload, request.query_params))


@router.get("/suggest-programs")
async def suggest_programs(request: Request, services: Services = Depends(get_services)) -> JSONResponse:
    result = await _proxy(request, services, SUGGEST_PROGRAMS, enrichment=program_enrichment)
    return _respond(result, program_suggestions(result.payload))


@router.get("/suggest-people")
async def suggest_people(request: Request, services: Services = Depends(get_services)) -> JSONResponse:
    result = await _proxy(request, services, SUGGEST_PEOPLE, enrichment=people_enrichment)
    return _respond(result, people_suggestions(result.payload))
