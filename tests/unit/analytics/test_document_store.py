"""Tests for the analytics document stores."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from search_proxy.analytics.store import (
    AnalyticsStoreProtocol,
    InMemoryDocumentStore,
    MongoAnalyticsStore,
)


T0 = datetime(2024, 6, 10, 12, 0, tzinfo=UTC)


def _record(session_id: str, query: str, minutes: int) -> dict:
    return {
        "handler": "search",
        "sessionId": session_id,
        "query": query,
        "timestamp": T0 + timedelta(minutes=minutes),
        "clicks": [],
    }


class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    def test_implements_protocol(self) -> None:
        assert isinstance(InMemoryDocumentStore(), AnalyticsStoreProtocol)

    @pytest.mark.asyncio
    async def test_insert_and_get(self, document_store: InMemoryDocumentStore) -> None:
        record_id = await document_store.insert_record(_record("sess_1_a", "biology", 0))

        stored = await document_store.get(record_id)
        assert stored is not None
        assert stored["_id"] == record_id
        assert stored["query"] == "biology"

    @pytest.mark.asyncio
    async def test_find_latest_by_session(self, document_store: InMemoryDocumentStore) -> None:
        await document_store.insert_record(_record("sess_1_a", "biology", 0))
        await document_store.insert_record(_record("sess_1_a", "nursing", 5))
        await document_store.insert_record(_record("sess_2_b", "law", 10))

        latest = await document_store.find_latest("sess_1_a")

        assert latest is not None
        assert latest["query"] == "nursing"

    @pytest.mark.asyncio
    async def test_find_latest_matches_query_case_insensitively(
        self,
        document_store: InMemoryDocumentStore,
    ) -> None:
        await document_store.insert_record(_record("sess_1_a", "Biology", 0))
        await document_store.insert_record(_record("sess_1_a", "nursing", 5))

        match = await document_store.find_latest("sess_1_a", " biology ")

        assert match is not None
        assert match["query"] == "Biology"
        assert await document_store.find_latest("sess_1_a", "law") is None

    @pytest.mark.asyncio
    async def test_append_click(self, document_store: InMemoryDocumentStore) -> None:
        record_id = await document_store.insert_record(_record("sess_1_a", "biology", 0))
        clicked_at = T0 + timedelta(minutes=1)

        assert await document_store.append_click(record_id, {"url": "u1"}, clicked_at) is True

        stored = await document_store.get(record_id)
        assert stored["clicks"] == [{"url": "u1"}]
        assert stored["lastClickTimestamp"] == clicked_at

    @pytest.mark.asyncio
    async def test_append_click_to_missing_record(self, document_store: InMemoryDocumentStore) -> None:
        assert await document_store.append_click("missing", {"url": "u1"}, T0) is False

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, document_store: InMemoryDocumentStore) -> None:
        record_id = await document_store.insert_record(_record("sess_1_a", "biology", 0))

        copy = await document_store.get(record_id)
        copy["clicks"].append({"url": "mutated"})

        assert (await document_store.get(record_id))["clicks"] == []

    @pytest.mark.asyncio
    async def test_push_session_click_creates_then_appends(self, document_store: InMemoryDocumentStore) -> None:
        document = {"handler": "click", "sessionId": "sess_1_a", "query": "law", "timestamp": T0, "clicks": []}

        first = await document_store.push_session_click("sess_1_a", document, {"url": "u1"}, T0)
        second = await document_store.push_session_click("sess_1_a", document, {"url": "u2"}, T0)

        assert first == second
        stored = await document_store.get(first)
        assert [click["url"] for click in stored["clicks"]] == ["u1", "u2"]
        assert stored["handler"] == "click"

    @pytest.mark.asyncio
    async def test_push_session_click_ignores_query_records(self, document_store: InMemoryDocumentStore) -> None:
        query_id = await document_store.insert_record(_record("sess_1_a", "biology", 0))

        click_id = await document_store.push_session_click("sess_1_a", {"timestamp": T0}, {"url": "u1"}, T0)

        assert click_id != query_id
        assert (await document_store.get(query_id))["clicks"] == []


class TestMongoAnalyticsStore:
    """Tests for MongoAnalyticsStore against a mocked collection."""

    @pytest.fixture
    def collection(self) -> MagicMock:
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        collection.find_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.create_index = AsyncMock()
        return collection

    @pytest.mark.asyncio
    async def test_insert_returns_string_id(self, collection: MagicMock) -> None:
        inserted = ObjectId()
        collection.insert_one.return_value = MagicMock(inserted_id=inserted)
        store = MongoAnalyticsStore(collection)

        record_id = await store.insert_record({"handler": "search"})

        assert record_id == str(inserted)

    @pytest.mark.asyncio
    async def test_find_latest_sorts_by_timestamp(self, collection: MagicMock) -> None:
        object_id = ObjectId()
        collection.find_one.return_value = {"_id": object_id, "sessionId": "sess_1_a"}
        store = MongoAnalyticsStore(collection)

        document = await store.find_latest("sess_1_a")

        assert document["_id"] == str(object_id)
        filter_, = collection.find_one.call_args.args
        assert filter_ == {"sessionId": "sess_1_a"}
        assert collection.find_one.call_args.kwargs["sort"] == [("timestamp", -1)]

    @pytest.mark.asyncio
    async def test_find_latest_with_query_uses_anchored_regex(self, collection: MagicMock) -> None:
        collection.find_one.return_value = None
        store = MongoAnalyticsStore(collection)

        assert await store.find_latest("sess_1_a", "c++ (intro)") is None

        filter_ = collection.find_one.call_args.args[0]
        assert filter_["query"]["$options"] == "i"
        assert filter_["query"]["$regex"].startswith("^")
        assert "c\\+\\+" in filter_["query"]["$regex"]

    @pytest.mark.asyncio
    async def test_append_click_pushes_and_sets_timestamp(self, collection: MagicMock) -> None:
        object_id = ObjectId()
        collection.update_one.return_value = MagicMock(matched_count=1)
        store = MongoAnalyticsStore(collection)

        assert await store.append_click(str(object_id), {"url": "u1"}, T0) is True

        filter_, update = collection.update_one.call_args.args
        assert filter_ == {"_id": object_id}
        assert update == {"$push": {"clicks": {"url": "u1"}}, "$set": {"lastClickTimestamp": T0}}

    @pytest.mark.asyncio
    async def test_append_click_unmatched(self, collection: MagicMock) -> None:
        collection.update_one.return_value = MagicMock(matched_count=0)
        store = MongoAnalyticsStore(collection)

        assert await store.append_click("not-an-object-id", {"url": "u1"}, T0) is False
        assert collection.update_one.call_args.args[0] == {"_id": "not-an-object-id"}

    @pytest.mark.asyncio
    async def test_ensure_indexes(self, collection: MagicMock) -> None:
        await MongoAnalyticsStore(collection).ensure_indexes()

        assert collection.create_index.await_count == 2
        unique_kwargs = collection.create_index.await_args_list[1].kwargs
        assert unique_kwargs["unique"] is True
        assert unique_kwargs["partialFilterExpression"] == {"handler": "click"}

    @pytest.mark.asyncio
    async def test_push_session_click_upserts(self, collection: MagicMock) -> None:
        object_id = ObjectId()
        collection.find_one_and_update = AsyncMock(return_value={"_id": object_id})
        store = MongoAnalyticsStore(collection)
        document = {"handler": "click", "sessionId": "sess_1_a", "query": "law", "clicks": [], "timestamp": T0}

        record_id = await store.push_session_click("sess_1_a", document, {"url": "u1"}, T0)

        assert record_id == str(object_id)
        filter_, update = collection.find_one_and_update.call_args.args
        assert filter_ == {"sessionId": "sess_1_a", "handler": "click"}
        assert update["$setOnInsert"] == {"query": "law", "timestamp": T0}
        assert update["$push"] == {"clicks": {"url": "u1"}}
        assert update["$set"] == {"lastClickTimestamp": T0}
        assert collection.find_one_and_update.call_args.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_push_session_click_retries_lost_upsert_race(self, collection: MagicMock) -> None:
        object_id = ObjectId()
        collection.find_one_and_update = AsyncMock(
            side_effect=[DuplicateKeyError("E11000 duplicate key"), {"_id": object_id}]
        )
        store = MongoAnalyticsStore(collection)

        record_id = await store.push_session_click("sess_1_a", {}, {"url": "u1"}, T0)

        assert record_id == str(object_id)
        assert collection.find_one_and_update.await_count == 2
