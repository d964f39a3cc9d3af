"""HTTP clients for external services."""

from search_proxy.clients.backend import (
    BackendResponse,
    FunnelbackClient,
    SearchBackendProtocol,
)


__all__ = [
    "BackendResponse",
    "FunnelbackClient",
    "SearchBackendProtocol",
]
