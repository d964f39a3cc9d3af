"""Document stores for analytics records.

MongoAnalyticsStore writes to MongoDB through pymongo's asyncio client.
InMemoryDocumentStore stands in when no URI is configured and backs tests.
Both implement AnalyticsStoreProtocol.
"""

from __future__ import annotations

import asyncio
import copy
import re
import uuid
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from search_proxy.core.logging import get_logger


logger = get_logger(__name__)

CLICK_HANDLER = "click"

# Fields the click upsert sets itself
_UPSERT_MANAGED_FIELDS = frozenset({"_id", "sessionId", "handler", "clicks", "lastClickTimestamp"})


@runtime_checkable
class AnalyticsStoreProtocol(Protocol):
    """Protocol for the analytics document store."""

    async def insert_record(self, document: dict[str, Any]) -> str:
        """Insert a query record and return its id."""
        ...

    async def find_latest(
        self,
        session_id: str,
        query: str | None = None,
    ) -> dict[str, Any] | None:
        """Return the most recent record of a session.

        When ``query`` is given only records whose stored query equals it
        case-insensitively are considered.
        """
        ...

    async def append_click(
        self,
        record_id: str,
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> bool:
        """Atomically append a click and update lastClickTimestamp."""
        ...

    async def push_session_click(
        self,
        session_id: str,
        document: dict[str, Any],
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> str:
        """Append a click to the session's standalone click record.

        The record is created from ``document`` when the session has none,
        in the same operation, so concurrent writers share one record.
        """
        ...


class InMemoryDocumentStore:
    """Process-local document store with the same semantics as Mongo.

    Uses asyncio.Lock so concurrent appends to one record are serialized
    and never lose a click.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def insert_record(self, document: dict[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        stored = copy.deepcopy(document)
        stored["_id"] = record_id
        async with self._lock:
            self._documents[record_id] = stored
        return record_id

    async def find_latest(
        self,
        session_id: str,
        query: str | None = None,
    ) -> dict[str, Any] | None:
        wanted = query.strip().casefold() if query is not None else None
        async with self._lock:
            candidates = [
                doc for doc in self._documents.values()
                if doc.get("sessionId") == session_id
                and (wanted is None or str(doc.get("query", "")).strip().casefold() == wanted)
            ]
            if not candidates:
                return None
            latest = max(candidates, key=lambda doc: doc["timestamp"])
            return copy.deepcopy(latest)

    async def append_click(
        self,
        record_id: str,
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> bool:
        async with self._lock:
            document = self._documents.get(record_id)
            if document is None:
                return False
            document.setdefault("clicks", []).append(copy.deepcopy(click))
            document["lastClickTimestamp"] = clicked_at
            return True

    async def push_session_click(
        self,
        session_id: str,
        document: dict[str, Any],
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> str:
        async with self._lock:
            for record_id, existing in self._documents.items():
                if existing.get("sessionId") == session_id and existing.get("handler") == CLICK_HANDLER:
                    existing.setdefault("clicks", []).append(copy.deepcopy(click))
                    existing["lastClickTimestamp"] = clicked_at
                    return record_id
            record_id = uuid.uuid4().hex
            stored = copy.deepcopy(document)
            stored.update(
                _id=record_id,
                sessionId=session_id,
                handler=CLICK_HANDLER,
                clicks=[copy.deepcopy(click)],
                lastClickTimestamp=clicked_at,
            )
            self._documents[record_id] = stored
            return record_id

    async def get(self, record_id: str) -> dict[str, Any] | None:
        """Return a copy of a record by id."""
        async with self._lock:
            document = self._documents.get(record_id)
            return copy.deepcopy(document) if document is not None else None

    async def all_records(self) -> list[dict[str, Any]]:
        """Return copies of all records, oldest first."""
        async with self._lock:
            documents = sorted(self._documents.values(), key=lambda doc: doc["timestamp"])
            return [copy.deepcopy(doc) for doc in documents]

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._documents)


class MongoAnalyticsStore:
    """MongoDB-backed analytics store.

    One document per query event; clicks are appended with ``$push`` so
    concurrent updates to the same record are applied atomically by the
    server.

    Example:
        >>> store = MongoAnalyticsStore.from_uri("mongodb://localhost:27017", "search_analytics")
        >>> record_id = await store.insert_record(record.to_document())
    """

    def __init__(self, collection: Any, client: Any | None = None) -> None:
        """Initialize with a pymongo AsyncCollection.

        Args:
            collection: Collection holding query records
            client: Owning AsyncMongoClient, closed by close()
        """
        self._collection = collection
        self._client = client

    @classmethod
    def from_uri(
        cls,
        uri: str,
        database: str,
        collection: str = "queries",
        timeout_ms: int = 2000,
    ) -> MongoAnalyticsStore:
        """Create a store connected to a MongoDB deployment.

        Args:
            uri: MongoDB connection URI
            database: Database name
            collection: Collection name
            timeout_ms: Server selection and socket timeout
        """
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
            tz_aware=True,
        )
        logger.info("Initialized MongoDB analytics store", database=database, collection=collection)
        return cls(client[database][collection], client=client)

    async def ensure_indexes(self) -> None:
        """Create the indexes used for click attribution.

        The partial unique index keeps one standalone click record per
        session across processes.
        """
        await self._collection.create_index([("sessionId", 1), ("timestamp", DESCENDING)])
        await self._collection.create_index(
            [("sessionId", 1)],
            name="session_click_record",
            unique=True,
            partialFilterExpression={"handler": CLICK_HANDLER},
        )

    async def insert_record(self, document: dict[str, Any]) -> str:
        result = await self._collection.insert_one(dict(document))
        return str(result.inserted_id)

    async def find_latest(
        self,
        session_id: str,
        query: str | None = None,
    ) -> dict[str, Any] | None:
        filter_: dict[str, Any] = {"sessionId": session_id}
        if query is not None:
            filter_["query"] = {"$regex": f"^\\s*{re.escape(query.strip())}\\s*$", "$options": "i"}
        document = await self._collection.find_one(filter_, sort=[("timestamp", DESCENDING)])
        if document is not None:
            document["_id"] = str(document["_id"])
        return document

    async def append_click(
        self,
        record_id: str,
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> bool:
        try:
            object_id: Any = ObjectId(record_id)
        except InvalidId:
            object_id = record_id
        result = await self._collection.update_one(
            {"_id": object_id},
            {"$push": {"clicks": click}, "$set": {"lastClickTimestamp": clicked_at}},
        )
        return result.matched_count > 0

    async def push_session_click(
        self,
        session_id: str,
        document: dict[str, Any],
        click: dict[str, Any],
        clicked_at: datetime,
    ) -> str:
        on_insert = {key: value for key, value in document.items() if key not in _UPSERT_MANAGED_FIELDS}
        update = {
            "$setOnInsert": on_insert,
            "$push": {"clicks": click},
            "$set": {"lastClickTimestamp": clicked_at},
        }
        # A concurrent upsert of the same session can lose the unique index race once
        try:
            stored = await self._upsert_click_record(session_id, update)
        except DuplicateKeyError:
            stored = await self._upsert_click_record(session_id, update)
        return str(stored["_id"])

    async def _upsert_click_record(self, session_id: str, update: dict[str, Any]) -> dict[str, Any]:
        return await self._collection.find_one_and_update(
            {"sessionId": session_id, "handler": CLICK_HANDLER},
            update,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
