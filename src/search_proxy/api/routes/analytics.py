"""Click analytics API routes.

Routes:
    POST /proxy/analytics/click         - record one click
    POST /proxy/analytics/clicks-batch  - record many clicks, summary returned

Click write failures never produce an error status; the response reports
whether the click was stored.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from search_proxy.analytics.models import BatchSummary, ClickEvent
from search_proxy.api.dependencies import get_services
from search_proxy.container import Services
from search_proxy.core.constants import HEADER_SESSION_ID, PROXY_PREFIX


router = APIRouter(
    prefix=f"{PROXY_PREFIX}/analytics",
    tags=["Analytics"],
)


class ClickResponse(BaseModel):
    """Outcome of a single click submission."""

    recorded: bool = Field(..., description="Whether the click was stored")
    session_id: str | None = Field(default=None, serialization_alias="sessionId")


class ClickBatchRequest(BaseModel):
    """Batch of raw click payloads.

    Entries stay untyped so one malformed click counts as a failure instead
    of rejecting the whole batch.
    """

    clicks: list[dict[str, Any]] = Field(default_factory=list)


@router.post("/click", response_model=ClickResponse, response_model_by_alias=True)
async def record_click(
    click: ClickEvent,
    request: Request,
    services: Services = Depends(get_services),
) -> ClickResponse:
    """Attach a click to the latest matching query of its session."""
    session = click.session_id or request.headers.get(HEADER_SESSION_ID)
    recorded = await services.recorder.record_click(session, click)
    return ClickResponse(recorded=recorded, session_id=session)


@router.post("/clicks-batch", response_model=BatchSummary)
async def record_clicks_batch(
    batch: ClickBatchRequest,
    services: Services = Depends(get_services),
) -> BatchSummary:
    """Record each click independently and report counts."""
    return await services.recorder.record_clicks_batch(batch.clicks)
