"""Custom exceptions for the search proxy.

All exceptions are namespaced under SearchProxyError so callers can catch
any proxy failure with a single except clause. Only backend failures are
meant to reach request handlers; the rest are absorbed where they occur.
"""


class SearchProxyError(Exception):
    """Base exception for all search proxy errors."""


class CacheUnavailableError(SearchProxyError):
    """Raised when the key-value cache cannot be reached or times out.

    Always degraded to a miss or a no-op by the cache store.
    """

    def __init__(self, message: str, version: str, operation: str) -> None:
        """Initialize cache error.

        Args:
            message: Error description
            version: Cache instance version that failed
            operation: Cache operation (get, set)
        """
        self.version = version
        self.operation = operation
        super().__init__(message)


class CacheRotationError(SearchProxyError):
    """Raised when an operator asks to rotate to an unknown cache version."""

    def __init__(self, target_version: str, known_versions: list[str]) -> None:
        self.target_version = target_version
        self.known_versions = known_versions
        super().__init__(
            f"Unknown cache version '{target_version}'. "
            f"Configured versions: {', '.join(known_versions)}"
        )


class BackendFailureError(SearchProxyError):
    """Raised when the search backend returns non-2xx or is unreachable.

    Attributes:
        status_code: Status to report to the client (backend status or 500)
        cause: Machine-readable failure cause
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        cause: str = "upstream_error",
    ) -> None:
        """Initialize backend failure.

        Args:
            message: Error description (logged, not returned to clients)
            status_code: HTTP status derived from the backend response
            cause: Failure cause label
        """
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class BackendTimeoutError(BackendFailureError):
    """Raised when the search backend exceeds the configured timeout."""

    def __init__(
        self,
        message: str,
        timeout_seconds: float,
        status_code: int = 500,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, status_code=status_code, cause="upstream_timeout")


class AnalyticsWriteError(SearchProxyError):
    """Raised inside the analytics worker when a document write fails.

    Never propagates past the recorder.
    """

    def __init__(self, message: str, attempts: int = 1) -> None:
        self.attempts = attempts
        super().__init__(message)


class GeoResolutionError(SearchProxyError):
    """Raised when an IP geolocation lookup fails.

    Swallowed by the locator, which returns an empty result instead.
    """

    def __init__(self, message: str, ip: str | None = None) -> None:
        self.ip = ip
        super().__init__(message)
