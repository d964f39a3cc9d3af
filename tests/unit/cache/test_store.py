"""Tests for the versioned CacheStore."""

import asyncio

import pytest

from search_proxy.cache.memory import InMemoryCacheClient
from search_proxy.cache.store import CacheStore
from search_proxy.cache.tiers import CACHE_TTL_SECONDS, CacheCategory, ttl_for
from search_proxy.core.exceptions import CacheRotationError
from tests.fakes.fake_clients import FailingCacheClient, SlowCacheClient, YieldingCacheClient


PARAMS = {"partial_query": "biology", "collection": "seattleu~sp-search"}


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTtlTiers:
    """Tests for the category TTL table."""

    def test_fixed_tiers(self) -> None:
        assert ttl_for(CacheCategory.SUGGESTION) == 3600
        assert ttl_for(CacheCategory.PROGRAM) == 86400
        assert ttl_for(CacheCategory.PEOPLE) == 43200
        assert ttl_for(CacheCategory.DEFAULT) == 1800

    def test_string_category(self) -> None:
        assert ttl_for("people") == CACHE_TTL_SECONDS[CacheCategory.PEOPLE]

    def test_unknown_category_uses_default(self) -> None:
        assert ttl_for("events") == 1800


class TestCacheStoreInit:
    """Tests for CacheStore construction."""

    def test_requires_an_instance(self) -> None:
        with pytest.raises(ValueError):
            CacheStore({})

    def test_active_version_must_be_configured(self) -> None:
        with pytest.raises(CacheRotationError):
            CacheStore({"v1": InMemoryCacheClient()}, active_version="v2")

    def test_versions(self, cache_store: CacheStore) -> None:
        assert cache_store.active_version == "v1"
        assert cache_store.versions == ["v1", "v2"]


class TestCacheStoreGetSet:
    """Tests for get/set behavior."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache_store: CacheStore) -> None:
        payload = ["biology", "biochemistry"]

        assert await cache_store.set("suggest", PARAMS, payload, CacheCategory.SUGGESTION) is True
        assert await cache_store.get("suggest", PARAMS) == payload

    @pytest.mark.asyncio
    async def test_get_is_insensitive_to_param_order_and_case(self, cache_store: CacheStore) -> None:
        await cache_store.set("suggest", PARAMS, ["biology"], CacheCategory.SUGGESTION)

        reordered = {"collection": "seattleu~sp-search", "partial_query": "Biology"}
        assert await cache_store.get("suggest", reordered) == ["biology"]

    @pytest.mark.asyncio
    async def test_short_query_is_never_stored(
        self,
        cache_store: CacheStore,
        cache_clients: dict[str, InMemoryCacheClient],
    ) -> None:
        params = {"partial_query": "bi"}

        assert await cache_store.set("suggest", params, ["bio"], CacheCategory.SUGGESTION) is False
        assert await cache_store.get("suggest", params) is None
        assert len(cache_clients["v1"]) == 0

    @pytest.mark.asyncio
    async def test_category_ttl_is_applied(
        self,
        cache_store: CacheStore,
        cache_clients: dict[str, InMemoryCacheClient],
    ) -> None:
        await cache_store.set("suggest-programs", PARAMS, {}, CacheCategory.PROGRAM)

        key = cache_store.key_for("suggest-programs", PARAMS)
        assert await cache_clients["v1"].ttl(key) == 86400

    @pytest.mark.asyncio
    async def test_program_entry_expires_after_one_day(self) -> None:
        clock = FakeClock()
        store = CacheStore({"v1": InMemoryCacheClient(clock=clock)})
        await store.set("suggest-programs", PARAMS, {"programs": 2}, CacheCategory.PROGRAM)

        clock.now = 86000
        assert await store.get("suggest-programs", PARAMS) == {"programs": 2}

        clock.now = 86500
        assert await store.get("suggest-programs", PARAMS) is None

    @pytest.mark.asyncio
    async def test_unserializable_value_is_not_stored(self, cache_store: CacheStore) -> None:
        assert await cache_store.set("search", PARAMS, {"bad": object()}, CacheCategory.DEFAULT) is False


class TestCacheStoreDegradation:
    """Cache failures degrade to a miss or a no-op."""

    @pytest.mark.asyncio
    async def test_unreachable_cache_is_a_miss(self) -> None:
        store = CacheStore({"v1": FailingCacheClient()})

        assert await store.get("suggest", PARAMS) is None
        assert await store.set("suggest", PARAMS, ["x"], CacheCategory.SUGGESTION) is False

    @pytest.mark.asyncio
    async def test_slow_cache_times_out_as_miss(self) -> None:
        store = CacheStore({"v1": SlowCacheClient(delay=1.0)}, timeout_seconds=0.01)

        assert await store.get("suggest", PARAMS) is None
        assert await store.set("suggest", PARAMS, ["x"], CacheCategory.SUGGESTION) is False

    @pytest.mark.asyncio
    async def test_ping_reports_unreachable(self) -> None:
        assert await CacheStore({"v1": FailingCacheClient()}).ping() is False

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(
        self,
        cache_store: CacheStore,
        cache_clients: dict[str, InMemoryCacheClient],
    ) -> None:
        await cache_clients["v1"].set(cache_store.key_for("suggest", PARAMS), b"not json")

        assert await cache_store.get("suggest", PARAMS) is None


class TestCacheRotation:
    """Tests for rotate()."""

    @pytest.mark.asyncio
    async def test_rotation_isolates_versions(self, cache_store: CacheStore) -> None:
        await cache_store.set("suggest", PARAMS, ["from-v1"], CacheCategory.SUGGESTION)

        previous = await cache_store.rotate("v2")

        assert previous == "v1"
        assert cache_store.active_version == "v2"
        assert await cache_store.get("suggest", PARAMS) is None

    @pytest.mark.asyncio
    async def test_writes_after_rotation_land_in_new_version(
        self,
        cache_store: CacheStore,
        cache_clients: dict[str, InMemoryCacheClient],
    ) -> None:
        await cache_store.rotate("v2")
        await cache_store.set("suggest", PARAMS, ["from-v2"], CacheCategory.SUGGESTION)

        assert await cache_store.get("suggest", PARAMS) == ["from-v2"]
        assert len(cache_clients["v2"]) == 1
        assert len(cache_clients["v1"]) == 0

        await cache_store.rotate("v1")
        assert await cache_store.get("suggest", PARAMS) is None

    @pytest.mark.asyncio
    async def test_version_prefix_isolates_shared_instance(self) -> None:
        shared = InMemoryCacheClient()
        store = CacheStore({"v1": shared, "v2": shared})
        await store.set("suggest", PARAMS, ["from-v1"], CacheCategory.SUGGESTION)

        await store.rotate("v2")

        assert await store.get("suggest", PARAMS) is None

    @pytest.mark.asyncio
    async def test_rotate_to_active_version_is_noop(self, cache_store: CacheStore) -> None:
        assert await cache_store.rotate("v1") == "v1"
        assert cache_store.active_version == "v1"

    @pytest.mark.asyncio
    async def test_rotate_to_unknown_version_raises(self, cache_store: CacheStore) -> None:
        with pytest.raises(CacheRotationError) as exc_info:
            await cache_store.rotate("v3")

        assert exc_info.value.known_versions == ["v1", "v2"]
        assert cache_store.active_version == "v1"

    @pytest.mark.asyncio
    async def test_concurrent_reads_during_rotation_never_fail(self) -> None:
        v1, v2 = YieldingCacheClient(), YieldingCacheClient()
        store = CacheStore({"v1": v1, "v2": v2}, active_version="v1")
        await store.set("suggest", PARAMS, ["from-v1"], CacheCategory.SUGGESTION)

        results = await asyncio.gather(
            *(store.get("suggest", PARAMS) for _ in range(20)),
            store.rotate("v2"),
            *(store.get("suggest", PARAMS) for _ in range(20)),
        )

        reads = results[:20] + results[21:]
        assert all(result in (["from-v1"], None) for result in reads)
        assert ["from-v1"] in reads
        assert store.active_version == "v2"

    @pytest.mark.asyncio
    async def test_write_racing_rotation_lands_in_one_version(self) -> None:
        v1, v2 = YieldingCacheClient(), YieldingCacheClient()
        store = CacheStore({"v1": v1, "v2": v2}, active_version="v1")

        await asyncio.gather(
            store.set("suggest", PARAMS, ["racing"], CacheCategory.SUGGESTION),
            store.rotate("v2"),
        )
        await store.set("people", PARAMS, ["after"], CacheCategory.PEOPLE)

        assert len(v1) + len(v2) == 2
        assert await store.get("people", PARAMS) == ["after"]
        assert len(v2) >= 1
