"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from search_proxy.container import Services
from search_proxy.core.constants import HEADER_SESSION_ID
from search_proxy.enrichment.geo import extract_client_ip


def get_services(request: Request) -> Services:
    """Return the services built at startup.

    Raises:
        HTTPException: 503 while the app is not started
    """
    services: Services | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return services


def query_params(request: Request) -> dict[str, Any]:
    """Collect query parameters, keeping repeated keys as lists."""
    params: dict[str, Any] = {}
    for name, value in request.query_params.multi_items():
        if name not in params:
            params[name] = value
        elif isinstance(params[name], list):
            params[name].append(value)
        else:
            params[name] = [params[name], value]
    return params


def client_ip(request: Request) -> str | None:
    fallback = request.client.host if request.client else None
    return extract_client_ip(request.headers, fallback=fallback)


def session_id(request: Request) -> str | None:
    """Session id sent by the client as ``sessionId`` or the session header."""
    return request.query_params.get("sessionId") or request.headers.get(HEADER_SESSION_ID)
