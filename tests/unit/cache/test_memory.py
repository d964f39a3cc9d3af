"""Tests for InMemoryCacheClient."""

import pytest

from search_proxy.cache.memory import InMemoryCacheClient
from search_proxy.cache.store import CacheClientProtocol


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestInMemoryCacheClient:
    """Tests for Redis-compatible get/set/ttl semantics."""

    def test_implements_cache_client_protocol(self) -> None:
        assert isinstance(InMemoryCacheClient(), CacheClientProtocol)

    @pytest.mark.asyncio
    async def test_set_then_get_returns_bytes(self) -> None:
        client = InMemoryCacheClient()

        await client.set("k", "value")

        assert await client.get("k") == b"value"

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self) -> None:
        assert await InMemoryCacheClient().get("missing") is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self) -> None:
        clock = FakeClock()
        client = InMemoryCacheClient(clock=clock)
        await client.set("k", b"v", ex=10)

        clock.now = 9.9
        assert await client.get("k") == b"v"

        clock.now = 10.0
        assert await client.get("k") is None
        assert len(client) == 0

    @pytest.mark.asyncio
    async def test_ttl_values(self) -> None:
        clock = FakeClock()
        client = InMemoryCacheClient(clock=clock)
        await client.set("expiring", b"v", ex=100)
        await client.set("forever", b"v")

        clock.now = 40
        assert await client.ttl("expiring") == 60
        assert await client.ttl("forever") == -1
        assert await client.ttl("missing") == -2

    @pytest.mark.asyncio
    async def test_set_without_ttl_clears_previous_expiry(self) -> None:
        clock = FakeClock()
        client = InMemoryCacheClient(clock=clock)
        await client.set("k", b"old", ex=5)
        await client.set("k", b"new")

        clock.now = 100
        assert await client.get("k") == b"new"

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        client = InMemoryCacheClient()
        await client.set("k", b"v")

        assert await client.delete("k") == 1
        assert await client.delete("k") == 0
