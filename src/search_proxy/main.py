"""
Main entry point for the search proxy service.

Creates the FastAPI application instance for uvicorn::

    uvicorn search_proxy.main:app --port 8080
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from search_proxy import __version__
from search_proxy.api.error_handlers import register_error_handlers
from search_proxy.api.routes import admin_router, analytics_router, health_router, search_router
from search_proxy.container import Services, build_services
from search_proxy.core.config import Settings, get_settings
from search_proxy.core.constants import HEADER_CACHE_STATUS, HEADER_SESSION_ID
from search_proxy.core.logging import configure_logging, get_logger


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    On startup: build services (unless preset on app.state) and start the
    analytics worker.
    On shutdown: drain analytics and close every client.
    """
    settings: Settings = app.state.settings
    services: Services | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services(settings)
        app.state.services = services

    logger.info(
        "Starting search proxy",
        port=settings.port,
        environment=settings.environment,
        cache_version=services.cache.active_version,
    )
    await services.start()

    yield

    logger.info("Shutting down search proxy")
    await services.close()


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use, defaults to get_settings()
        services: Prebuilt services (tests inject fakes this way)
    """
    settings = settings or (services.settings if services else get_settings())

    app = FastAPI(
        title="Search Proxy",
        description="Caching and analytics proxy for Funnelback search",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[HEADER_SESSION_ID, HEADER_CACHE_STATUS],
    )

    register_error_handlers(app)

    app.include_router(search_router)
    app.include_router(analytics_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    return app


# Create application instance
app = create_app()
