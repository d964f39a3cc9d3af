"""Core module - Configuration, logging, exceptions and shared constants.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - Exception classes: SearchProxyError, BackendFailureError, etc.
"""

from search_proxy.core.config import Settings, get_settings
from search_proxy.core.constants import Timeouts
from search_proxy.core.exceptions import (
    AnalyticsWriteError,
    BackendFailureError,
    BackendTimeoutError,
    CacheRotationError,
    CacheUnavailableError,
    GeoResolutionError,
    SearchProxyError,
)
from search_proxy.core.logging import configure_logging, get_logger


__all__ = [
    # Exceptions
    "AnalyticsWriteError",
    "BackendFailureError",
    "BackendTimeoutError",
    "CacheRotationError",
    "CacheUnavailableError",
    "GeoResolutionError",
    "SearchProxyError",
    # Configuration
    "Settings",
    "Timeouts",
    # Logging
    "configure_logging",
    "get_logger",
    "get_settings",
]
