"""Analytics record schemas.

Records are persisted one document per query event with clicks nested as a
list. Field names are camelCase on the wire and in the document store to
match the frontend contract; Python attributes are snake_case.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Open payload for content-specific metadata (program facets, etc.)
EnrichmentData = dict[str, Any]

# Location fields copied from a resolved GeoResult; never a raw IP
LOCATION_FIELDS: tuple[str, ...] = ("city", "region", "country", "timezone", "latitude", "longitude")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the document-store layout (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="python")


class ClickRecord(_CamelModel):
    """A click nested inside an analytics record."""

    url: str = ""
    title: str = ""
    position: int | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class ClickEvent(_CamelModel):
    """A click reported by the frontend.

    Attributes:
        session_id: Session the click belongs to
        original_query: Query that produced the clicked result, when known
        clicked_url: Target URL
        clicked_title: Result title
        click_position: 1-based rank of the result
        timestamp: Client-side click time
    """

    session_id: str | None = None
    original_query: str | None = None
    clicked_url: str = ""
    clicked_title: str = ""
    click_position: int | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    def to_click_record(self) -> ClickRecord:
        return ClickRecord(
            url=self.clicked_url,
            title=self.clicked_title,
            position=self.click_position,
            timestamp=self.timestamp,
        )


class AnalyticsRecord(_CamelModel):
    """One search event and the clicks attributed to it.

    Identity is (session_id, query, handler, timestamp) and is not required
    to be unique.
    """

    handler: str
    query: str = ""
    search_collection: str | None = None
    session_id: str | None = None

    # Anonymized client facts
    user_agent: str | None = None
    referer: str | None = None

    # Location
    city: str = ""
    region: str = ""
    country: str = ""
    timezone: str = ""
    latitude: float | None = None
    longitude: float | None = None

    # Timing and results
    response_time: float | None = Field(default=None, description="Milliseconds")
    result_count: int = 0
    has_results: bool = False
    cache_hit: bool = False
    error: str | None = None

    # Tab classification
    is_program_tab: bool = False
    is_staff_tab: bool = False
    tabs: list[str] = Field(default_factory=list)

    enrichment_data: EnrichmentData = Field(default_factory=dict)
    clicks: list[ClickRecord] = Field(default_factory=list)

    timestamp: datetime = Field(default_factory=utc_now)
    last_click_timestamp: datetime | None = None

    def with_location(self, location: Mapping[str, Any]) -> AnalyticsRecord:
        """Return a copy carrying the location fields found in ``location``."""
        update = {name: location[name] for name in LOCATION_FIELDS if name in location}
        return self.model_copy(update=update)


class BatchSummary(_CamelModel):
    """Outcome of a batch of click writes."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
