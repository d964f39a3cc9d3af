"""API routes.

Routers:
    - search_router: /proxy/funnelback, /proxy/suggest*
    - analytics_router: /proxy/analytics/*
    - admin_router: /admin/cache/rotate
    - health_router: /health
"""

from search_proxy.api.routes.admin import router as admin_router
from search_proxy.api.routes.analytics import router as analytics_router
from search_proxy.api.routes.health import router as health_router
from search_proxy.api.routes.search import router as search_router


__all__ = [
    "admin_router",
    "analytics_router",
    "health_router",
    "search_router",
]
