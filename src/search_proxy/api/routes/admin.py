"""Operator API routes.

Routes:
    POST /admin/cache/rotate - switch the active cache instance
"""

from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from search_proxy.api.dependencies import get_services
from search_proxy.container import Services
from search_proxy.core.constants import ADMIN_PREFIX, HEADER_ADMIN_TOKEN
from search_proxy.core.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(
    prefix=ADMIN_PREFIX,
    tags=["Admin"],
)


class RotateRequest(BaseModel):
    version: str = Field(..., min_length=1, description="Cache version to activate")


class RotateResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    previous_version: str
    active_version: str
    versions: list[str]


def require_admin_token(
    services: Services = Depends(get_services),
    token: str | None = Header(default=None, alias=HEADER_ADMIN_TOKEN),
) -> None:
    """Check the admin token when one is configured.

    Raises:
        HTTPException: 401 on a missing or wrong token
    """
    expected = services.settings.admin_token
    if expected is None:
        return
    if token is None or not secrets.compare_digest(token, expected.get_secret_value()):
        logger.warning("Admin request rejected")
        raise HTTPException(status_code=401, detail="Invalid admin token")


@router.post(
    "/cache/rotate",
    response_model=RotateResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin_token)],
)
async def rotate_cache(
    body: RotateRequest,
    services: Services = Depends(get_services),
) -> RotateResponse:
    """Point all subsequent cache reads and writes at another instance.

    Unknown versions are rejected with 409 by the CacheRotationError handler.
    """
    previous = await services.cache.rotate(body.version)
    return RotateResponse(
        previous_version=previous,
        active_version=services.cache.active_version,
        versions=services.cache.versions,
    )
