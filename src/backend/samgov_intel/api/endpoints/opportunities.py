"""
SAM.gov opportunity endpoints.

Lists stored opportunities, records reviewer decisions, and fetches the
live record of a single notice including its line items.
"""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Query

from samgov_intel.api.deps import DB, AppSettings, SamClient
from samgov_intel.core.exceptions import EntityNotFoundException, ServiceNotConfiguredException
from samgov_intel.core.logging import get_logger
from samgov_intel.models import OpportunityStatus
from samgov_intel.schemas.opportunity import (
    OpportunityDetailsResponse,
    OpportunityListResponse,
    OpportunityResponse,
    OpportunityStatusUpdate,
)
from samgov_intel.services.opportunity_sync import OpportunitySyncService

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=OpportunityListResponse)
async def list_opportunities(
    db: DB,
    client: SamClient,
    settings: AppSettings,
    limit: int = Query(default=50, ge=1, le=500),
    status: OpportunityStatus | None = None,
) -> OpportunityListResponse:
    """Most recently posted opportunities, optionally filtered by review status."""
    service = OpportunitySyncService(db, client, settings=settings)
    opportunities = await service.list_opportunities(limit=limit, status=status)
    return OpportunityListResponse(
        opportunities=[OpportunityResponse.model_validate(o) for o in opportunities],
        count=len(opportunities),
    )


@router.patch("/{opportunity_id}", response_model=OpportunityResponse)
async def update_opportunity_status(
    db: DB,
    client: SamClient,
    settings: AppSettings,
    opportunity_id: UUID,
    data: OpportunityStatusUpdate,
) -> OpportunityResponse:
    """Mark an opportunity reviewed, imported or dismissed."""
    service = OpportunitySyncService(db, client, settings=settings)
    opportunity = await service.update_opportunity_status(
        opportunity_id,
        data.status,
        dismissed_reason=data.dismissed_reason,
    )
    return OpportunityResponse.model_validate(opportunity)


@router.get("/notice/{notice_id}", response_model=OpportunityDetailsResponse)
async def get_notice_details(notice_id: str, client: SamClient) -> OpportunityDetailsResponse:
    """Full live record for one notice, with line items."""
    if client is None:
        raise ServiceNotConfiguredException("SAM_GOV_API_KEY")

    details = await client.get_opportunity_details(notice_id)
    if details is None:
        raise EntityNotFoundException("Opportunity notice", notice_id)

    logger.info(
        "Fetched notice details",
        notice_id=notice_id,
        line_items=len(details.line_items),
        line_item_strategy=details.line_item_strategy,
    )
    return OpportunityDetailsResponse.model_validate(asdict(details))
