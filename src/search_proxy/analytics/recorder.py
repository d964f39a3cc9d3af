"""AnalyticsRecorder - best-effort persistence of search and click facts.

Query records are handed to a background worker through a bounded queue;
the request path enqueues and returns immediately. The worker owns the
retry/drop policy. Clicks are attributed to the most recent matching
query record of their session, or stored standalone when none exists.

Nothing in this module raises into a caller: write failures are logged and
swallowed.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from search_proxy.analytics.models import (
    AnalyticsRecord,
    BatchSummary,
    ClickEvent,
    utc_now,
)
from search_proxy.analytics.store import CLICK_HANDLER, AnalyticsStoreProtocol
from search_proxy.core.constants import Timeouts
from search_proxy.core.exceptions import AnalyticsWriteError
from search_proxy.core.logging import get_logger, request_context


logger = get_logger(__name__)

# Errors a store write may raise that are worth retrying
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    PyMongoError,
    OSError,
)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.5
DEFAULT_DRAIN_TIMEOUT_SECONDS = 5.0


class AnalyticsRecorder:
    """Fire-and-forget analytics writer with session-based click attribution.

    Click attribution tie-break, in order:
        1. Most recent record of the session whose query equals the click's
           ``originalQuery`` (case-insensitive)
        2. Most recent record of the session
        3. The session's standalone record (handler "click"), created on
           its first click

    Attribution is serialized per session so concurrent clicks of a new
    session share one standalone record.

    Example:
        >>> recorder = AnalyticsRecorder(InMemoryDocumentStore())
        >>> await recorder.start()
        >>> await recorder.record_query({"handler": "suggest", "query": "biology"})
        >>> await recorder.record_click("sess_1_abc", {"clickedUrl": "https://..."})
        >>> await recorder.stop()
    """

    def __init__(
        self,
        store: AnalyticsStoreProtocol,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        timeout_seconds: float = Timeouts.ANALYTICS_WRITE,
        drain_timeout_seconds: float = DEFAULT_DRAIN_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the recorder.

        Args:
            store: Document store receiving records
            queue_size: Maximum pending query records before dropping
            max_attempts: Write attempts per record before dropping it
            backoff_seconds: Initial retry delay, doubled per attempt
            timeout_seconds: Timeout of a single store operation
            drain_timeout_seconds: Time stop() waits for pending writes
        """
        self._store = store
        self._queue: asyncio.Queue[AnalyticsRecord] = asyncio.Queue(maxsize=queue_size)
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._timeout = timeout_seconds
        self._drain_timeout = drain_timeout_seconds
        self._worker: asyncio.Task[None] | None = None
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self.written = 0
        self.dropped = 0

    @property
    def queue_depth(self) -> int:
        """Return the number of query records waiting to be written."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        """Check if the background worker is running."""
        return self._worker is not None and not self._worker.done()

    # -------------------------------------------------------------------------
    # Worker lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background worker on the running event loop."""
        if self.is_running:
            return
        self._worker = asyncio.create_task(self._run(), name="analytics-recorder")
        logger.info("Analytics recorder started")

    async def flush(self) -> None:
        """Wait until every queued record has been written or dropped."""
        await self._queue.join()

    async def stop(self) -> None:
        """Drain pending writes (bounded) and stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Analytics drain timed out, pending records lost",
                pending=self._queue.qsize(),
            )
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Analytics recorder stopped", written=self.written, dropped=self.dropped)

    async def _run(self) -> None:
        while True:
            record = await self._queue.get()
            try:
                await self._write_with_retry(record)
            except AnalyticsWriteError as e:
                self.dropped += 1
                logger.error(
                    "Dropping analytics record",
                    handler=record.handler,
                    attempts=e.attempts,
                    error=str(e),
                )
            except Exception:
                # Worker must outlive any single bad record
                self.dropped += 1
                logger.exception("Unexpected analytics worker failure", handler=record.handler)
            finally:
                self._queue.task_done()

    async def _write_with_retry(self, record: AnalyticsRecord) -> str:
        """Insert a record, retrying transient failures with backoff.

        Raises:
            AnalyticsWriteError: After exhausting attempts
        """
        document = record.to_document()
        last_exception: BaseException | None = None

        for attempt in range(self._max_attempts):
            try:
                record_id = await asyncio.wait_for(
                    self._store.insert_record(document),
                    timeout=self._timeout,
                )
                self.written += 1
                return record_id
            except RETRYABLE_ERRORS as e:
                last_exception = e

            if attempt < self._max_attempts - 1:
                logger.warning(
                    "Retrying analytics write",
                    attempt=attempt + 1,
                    max_attempts=self._max_attempts,
                    error=str(last_exception) or type(last_exception).__name__,
                )
                await asyncio.sleep(self._backoff_seconds * (2**attempt))

        raise AnalyticsWriteError(
            f"analytics store unavailable: {last_exception!r}",
            attempts=self._max_attempts,
        )

    # -------------------------------------------------------------------------
    # Query records
    # -------------------------------------------------------------------------

    async def record_query(self, fields: AnalyticsRecord | Mapping[str, Any]) -> None:
        """Queue a search event for persistence. Never blocks or raises.

        Args:
            fields: AnalyticsRecord or a mapping of its fields (snake_case or
                camelCase)
        """
        try:
            record = (
                fields if isinstance(fields, AnalyticsRecord)
                else AnalyticsRecord.model_validate(dict(fields))
            )
        except ValidationError as e:
            self.dropped += 1
            logger.warning("Invalid analytics record dropped", errors=e.error_count())
            return
        except (TypeError, ValueError) as e:
            self.dropped += 1
            logger.warning("Unreadable analytics record dropped", error=str(e))
            return

        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Analytics queue full, record dropped",
                handler=record.handler,
                queue_size=self._queue.maxsize,
            )

    # -------------------------------------------------------------------------
    # Clicks
    # -------------------------------------------------------------------------

    async def record_click(
        self,
        session_id: str | None,
        click: ClickEvent | Mapping[str, Any],
    ) -> bool:
        """Attribute a click to a query record of its session.

        Args:
            session_id: Session of the click; falls back to the click's own
                ``sessionId``
            click: ClickEvent or mapping of its fields

        Returns:
            True if the click was stored, False on failure
        """
        try:
            event = click if isinstance(click, ClickEvent) else ClickEvent.model_validate(dict(click))
        except ValidationError as e:
            logger.warning("Invalid click event dropped", errors=e.error_count())
            return False
        except (TypeError, ValueError) as e:
            logger.warning("Unreadable click event dropped", error=str(e))
            return False

        session = session_id or event.session_id
        with request_context(session_id=session):
            try:
                await asyncio.wait_for(self._attribute_click(session, event), timeout=self._timeout)
            except RETRYABLE_ERRORS as e:
                logger.warning("Click write failed", error=str(e) or type(e).__name__)
                return False
            except Exception:
                logger.exception("Unexpected click write failure")
                return False
        return True

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    async def _attribute_click(self, session_id: str | None, event: ClickEvent) -> None:
        click_document = event.to_click_record().to_document()
        clicked_at = utc_now()
        standalone = AnalyticsRecord(
            handler=CLICK_HANDLER,
            query=event.original_query or "",
            session_id=session_id,
            clicks=[event.to_click_record()],
            last_click_timestamp=clicked_at,
        )

        if not session_id:
            await self._store.insert_record(standalone.to_document())
            logger.debug("Sessionless click record created")
            return

        # Lookup and create run as one step per session
        async with self._session_lock(session_id):
            record = None
            if event.original_query and event.original_query.strip():
                record = await self._store.find_latest(session_id, event.original_query)
            if record is None:
                record = await self._store.find_latest(session_id)
            if record is not None and await self._store.append_click(
                str(record["_id"]), click_document, clicked_at
            ):
                logger.debug("Click attributed", position=event.click_position)
                return

            await self._store.push_session_click(
                session_id, standalone.to_document(), click_document, clicked_at
            )
            logger.debug("Standalone click record updated", position=event.click_position)

    async def record_clicks_batch(
        self,
        clicks: Iterable[ClickEvent | Mapping[str, Any]],
    ) -> BatchSummary:
        """Record many clicks, isolating failures per entry.

        Args:
            clicks: Click events, each carrying its own sessionId

        Returns:
            BatchSummary with processed/succeeded/failed counts
        """
        entries = list(clicks)
        results = await asyncio.gather(
            *(self.record_click(None, entry) for entry in entries),
            return_exceptions=True,
        )
        succeeded = sum(1 for result in results if result is True)
        summary = BatchSummary(
            processed=len(entries),
            succeeded=succeeded,
            failed=len(entries) - succeeded,
        )
        logger.info(
            "Click batch recorded",
            processed=summary.processed,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    def __repr__(self) -> str:
        return (
            f"AnalyticsRecorder(running={self.is_running}, "
            f"pending={self.queue_depth}, written={self.written}, dropped={self.dropped})"
        )
