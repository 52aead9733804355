"""Ad Ops Hub - Dashboard API Routes."""

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from adops.api.deps import get_dashboard_service, get_identity
from adops.analyzer.dashboard import DashboardService
from adops.config import settings
from adops.core.errors import (
    InvalidInputError,
    PermissionDeniedError,
    SourceNotFoundError,
    UnresolvedColumnError,
)
from adops.models.campaign_models import (
    CampaignSearchResult,
    DashboardPayload,
    ErrorPayload,
    SubmitResult,
)
from adops.core.logging import get_logger

logger = get_logger("api.dashboard")

router = APIRouter(tags=["Dashboard"])


# ── Request / Response Models ──


class SubmitEntryRequest(BaseModel):
    """Request body for POST /entries."""

    code: Optional[str] = None
    """Entry code appended to the next empty cell of the entry column."""

    model_config = {"json_schema_extra": {"examples": [{"code": "AQ-2025-0142"}]}}


class AccessResponse(BaseModel):
    has_access: bool


# ── Endpoints ──


@router.get("/dashboard", response_model=Union[DashboardPayload, ErrorPayload])
async def get_dashboard(
    identity: Optional[str] = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Chart tables, client list and the caller's name and role.

    Source problems are reported as ``{"error": ...}`` rather than an HTTP error.
    """
    return await service.get_dashboard_data(identity)


@router.get(
    "/campaigns/search",
    response_model=Union[List[CampaignSearchResult], ErrorPayload],
)
async def search_campaigns(
    q: str = Query("", description="Campaign type fragment (case-insensitive)"),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Search campaigns by campaign type, newest start date first."""
    return await service.search_campaign_by_type(q)


@router.post("/entries", response_model=SubmitResult)
async def submit_entry(
    request: SubmitEntryRequest,
    identity: Optional[str] = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Append an entry code to the campaign log (admins only)."""
    try:
        return await service.submit_entry(identity, request.code)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UnresolvedColumnError as e:
        logger.error(f"Entry column misconfigured: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/access", response_model=AccessResponse)
async def check_access(
    identity: Optional[str] = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Whether the caller has any role in the permissions sheet."""
    return AccessResponse(has_access=await service.has_access(identity))


@router.post("/cache/invalidate")
async def invalidate_cache(
    identity: Optional[str] = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Drop the cached dashboard (admins only)."""
    if not await service.gate.authorize(identity, settings.admin_role):
        raise HTTPException(status_code=403, detail="Permission Denied: admins only.")
    service.invalidate_dashboard_cache()
    return {"status": "success"}
