"""In-process cache client with Redis-compatible semantics.

Stands in for a Redis instance when no cache URL is configured (local
development) and backs unit tests. Expiry is evaluated lazily against an
injectable clock.
"""

import asyncio
import time
from collections.abc import Callable


class InMemoryCacheClient:
    """Subset of ``redis.asyncio.Redis`` backed by a dict.

    Example:
        >>> client = InMemoryCacheClient()
        >>> await client.set("v1:suggest:abc", b"[]", ex=3600)
        >>> await client.get("v1:suggest:abc")
        b'[]'
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Returns the current time in seconds
        """
        self._clock = clock
        self._store: dict[str, bytes] = {}
        self._expires_at: dict[str, float] = {}
        self._lock = asyncio.Lock()

    def _expired(self, key: str) -> bool:
        expires_at = self._expires_at.get(key)
        return expires_at is not None and self._clock() >= expires_at

    def _evict(self, key: str) -> None:
        self._store.pop(key, None)
        self._expires_at.pop(key, None)

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            if key not in self._store:
                return None
            if self._expired(key):
                self._evict(key)
                return None
            return self._store[key]

    async def set(
        self,
        key: str,
        value: bytes | str,
        ex: int | None = None,
    ) -> bool:
        data = value.encode("utf-8") if isinstance(value, str) else value
        async with self._lock:
            self._store[key] = data
            if ex is not None:
                self._expires_at[key] = self._clock() + ex
            else:
                self._expires_at.pop(key, None)
        return True

    async def delete(self, key: str) -> int:
        async with self._lock:
            if key in self._store:
                self._evict(key)
                return 1
            return 0

    async def ttl(self, key: str) -> int:
        """Remaining TTL: -2 if the key is missing, -1 if it never expires."""
        async with self._lock:
            if key not in self._store or self._expired(key):
                return -2
            expires_at = self._expires_at.get(key)
            if expires_at is None:
                return -1
            return max(0, int(expires_at - self._clock()))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        async with self._lock:
            self._store.clear()
            self._expires_at.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"InMemoryCacheClient(entries={len(self._store)})"
