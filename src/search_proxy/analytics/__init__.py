"""Analytics package - query and click facts with session correlation.

Exports:
    - AnalyticsRecorder: queued query writes, click attribution
    - AnalyticsRecord, ClickEvent, ClickRecord, BatchSummary
    - InMemoryDocumentStore, MongoAnalyticsStore, AnalyticsStoreProtocol
"""

from search_proxy.analytics.models import (
    AnalyticsRecord,
    BatchSummary,
    ClickEvent,
    ClickRecord,
)
from search_proxy.analytics.recorder import AnalyticsRecorder
from search_proxy.analytics.store import (
    AnalyticsStoreProtocol,
    InMemoryDocumentStore,
    MongoAnalyticsStore,
)


__all__ = [
    "AnalyticsRecord",
    "AnalyticsRecorder",
    "AnalyticsStoreProtocol",
    "BatchSummary",
    "ClickEvent",
    "ClickRecord",
    "InMemoryDocumentStore",
    "MongoAnalyticsStore",
]
