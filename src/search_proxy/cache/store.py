"""CacheStore - versioned, TTL-tiered response cache.

Keys are derived from (endpoint, normalized params) and scoped by the
version of the active cache instance. Two backing instances can be
configured; ``rotate()`` swaps the active one without downtime.

Failure semantics: any read or write failure degrades to a miss or a no-op.
Nothing raised by the backing instance reaches the request path.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from redis.exceptions import RedisError

from search_proxy.cache.keys import build_cache_key, extract_query_text, is_cacheable_query
from search_proxy.cache.tiers import CacheCategory, ttl_for
from search_proxy.core.constants import Timeouts
from search_proxy.core.exceptions import CacheRotationError, CacheUnavailableError
from search_proxy.core.logging import get_logger


logger = get_logger(__name__)

# Digest characters kept when a key is logged
LOGGED_DIGEST_LENGTH = 8


def _short_key(key: str) -> str:
    prefix, _, digest = key.rpartition(":")
    return f"{prefix}:{digest[:LOGGED_DIGEST_LENGTH]}"


def _category_name(category: CacheCategory | str) -> str:
    return category.value if isinstance(category, CacheCategory) else str(category)


@runtime_checkable
class CacheClientProtocol(Protocol):
    """Protocol for Redis client duck typing.

    Satisfied by ``redis.asyncio.Redis`` in production and by
    InMemoryCacheClient in development and tests.
    """

    async def get(self, key: str) -> bytes | None:
        """Get a value from the cache."""
        ...

    async def set(
        self,
        key: str,
        value: bytes,
        ex: int | None = None,
    ) -> bool:
        """Set a value with optional expiry in seconds."""
        ...

    async def ttl(self, key: str) -> int:
        """Get TTL of a key in seconds."""
        ...


@dataclass(frozen=True)
class CacheInstanceRef:
    """Pointer to one physical cache instance.

    Attributes:
        version: Instance identifier (e.g. "v1")
        client: Client connected to that instance
    """

    version: str
    client: CacheClientProtocol


class CacheStore:
    """Versioned key-value cache with category TTLs and atomic rotation.

    The active instance ref is the only mutable state. Each operation reads
    it once and uses that ref until it completes, so a concurrent rotation
    never makes one request read from one instance and write to another.

    Example:
        >>> store = CacheStore({"v1": redis_a, "v2": redis_b}, active_version="v1")
        >>> await store.set("suggest", {"partial_query": "biology"}, payload, "suggestion")
        >>> await store.get("suggest", {"partial_query": "biology"})
        >>> await store.rotate("v2")
    """

    def __init__(
        self,
        instances: Mapping[str, CacheClientProtocol],
        active_version: str = "v1",
        timeout_seconds: float = Timeouts.CACHE,
    ) -> None:
        """Initialize the cache store.

        Args:
            instances: Map of version identifier to cache client
            active_version: Version serving reads and writes at startup
            timeout_seconds: Per-operation timeout; expiry counts as a miss

        Raises:
            CacheRotationError: If active_version is not configured
        """
        if not instances:
            raise ValueError("at least one cache instance is required")
        self._refs: dict[str, CacheInstanceRef] = {
            version: CacheInstanceRef(version=version, client=client)
            for version, client in instances.items()
        }
        if active_version not in self._refs:
            raise CacheRotationError(active_version, sorted(self._refs))
        self._active: CacheInstanceRef = self._refs[active_version]
        self._timeout = timeout_seconds
        self._rotation_lock = asyncio.Lock()

    @property
    def active_version(self) -> str:
        """Return the version currently serving reads and writes."""
        return self._active.version

    @property
    def versions(self) -> list[str]:
        """Return all configured versions."""
        return sorted(self._refs)

    def key_for(self, endpoint: str, params: Mapping[str, Any]) -> str:
        """Return the key a request maps to under the active version."""
        return build_cache_key(self._active.version, endpoint, params)

    async def get(self, endpoint: str, params: Mapping[str, Any]) -> Any | None:
        """Look up a cached response.

        Args:
            endpoint: Endpoint identifier
            params: Request query parameters

        Returns:
            Decoded cached value, or None on miss, short query or failure
        """
        if not is_cacheable_query(params):
            return None

        ref = self._active
        key = build_cache_key(ref.version, endpoint, params)
        try:
            data = await self._call(ref, "get", ref.client.get(key))
        except CacheUnavailableError as e:
            self._log_failure(e, endpoint, key)
            return None

        if data is None:
            logger.debug(
                "Cache miss",
                endpoint=endpoint,
                version=ref.version,
                query=extract_query_text(params),
            )
            return None

        try:
            return json.loads(data)
        except (TypeError, ValueError) as e:
            logger.warning(
                "Discarding undecodable cache entry",
                endpoint=endpoint,
                version=ref.version,
                key=_short_key(key),
                error=str(e),
            )
            return None

    async def set(
        self,
        endpoint: str,
        params: Mapping[str, Any],
        value: Any,
        category: CacheCategory | str = CacheCategory.DEFAULT,
    ) -> bool:
        """Store a response under the category's TTL.

        Args:
            endpoint: Endpoint identifier
            params: Request query parameters
            value: JSON-serializable response payload
            category: Content category driving the TTL

        Returns:
            True if written, False for short queries or on failure
        """
        if not is_cacheable_query(params):
            return False

        ref = self._active
        key = build_cache_key(ref.version, endpoint, params)
        ttl = ttl_for(category)
        category_name = _category_name(category)

        try:
            payload = json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.warning(
                "Response not cacheable",
                endpoint=endpoint,
                category=category_name,
                key=_short_key(key),
                error=str(e),
            )
            return False

        try:
            await self._call(ref, "set", ref.client.set(key, payload, ex=ttl))
        except CacheUnavailableError as e:
            self._log_failure(e, endpoint, key, category=category_name)
            return False

        logger.debug(
            "Cache stored",
            endpoint=endpoint,
            category=category_name,
            version=ref.version,
            ttl=ttl,
        )
        return True

    async def rotate(self, target_version: str) -> str:
        """Point all subsequent operations at another cache instance.

        Args:
            target_version: Version to activate

        Returns:
            The version that was active before the rotation

        Raises:
            CacheRotationError: If target_version is not configured
        """
        if target_version not in self._refs:
            raise CacheRotationError(target_version, self.versions)

        async with self._rotation_lock:
            previous = self._active
            if previous.version == target_version:
                logger.info("Cache rotation skipped, version already active", version=target_version)
                return previous.version
            self._active = self._refs[target_version]

        logger.info(
            "Cache rotated",
            previous_version=previous.version,
            active_version=target_version,
        )
        return previous.version

    async def ping(self) -> bool:
        """Check that the active instance is reachable."""
        ref = self._active
        ping = getattr(ref.client, "ping", None)
        if ping is None:
            return True
        try:
            return bool(await self._call(ref, "ping", ping()))
        except CacheUnavailableError:
            return False

    async def close(self) -> None:
        """Close all backing clients."""
        for ref in self._refs.values():
            close = getattr(ref.client, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except (RedisError, OSError) as e:
                logger.warning("Cache client close failed", version=ref.version, error=str(e))

    async def _call(self, ref: CacheInstanceRef, operation: str, awaitable: Any) -> Any:
        """Await a client call under the store timeout.

        Raises:
            CacheUnavailableError: On timeout, connection or Redis error
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise CacheUnavailableError(
                f"cache {operation} timed out after {self._timeout}s",
                version=ref.version,
                operation=operation,
            ) from e
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(
                f"cache {operation} failed: {e}",
                version=ref.version,
                operation=operation,
            ) from e

    def _log_failure(
        self,
        error: CacheUnavailableError,
        endpoint: str,
        key: str,
        category: str | None = None,
    ) -> None:
        logger.warning(
            "Cache unavailable, continuing without cache",
            endpoint=endpoint,
            category=category,
            operation=error.operation,
            version=error.version,
            key=_short_key(key),
            error=str(error),
        )

    def __repr__(self) -> str:
        return f"CacheStore(active={self._active.version!r}, versions={self.versions})"
