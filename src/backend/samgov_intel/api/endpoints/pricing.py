"""
Historical pricing endpoint.

GET /pricing?nsn=6810-01-234-5678
GET /pricing?psc=6810&naics=424690
"""

from typing import Annotated

from fastapi import APIRouter, Query

from samgov_intel.api.deps import DB, AppSettings, SamClient
from samgov_intel.core.exceptions import ValidationException
from samgov_intel.core.logging import get_logger
from samgov_intel.schemas.pricing import PriceLookupParams, PricingResult
from samgov_intel.services.price_lookup import PriceLookupService

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=PricingResult)
async def lookup_pricing(
    db: DB,
    client: SamClient,
    settings: AppSettings,
    nsn: str | None = None,
    psc: str | None = None,
    naics: str | None = None,
    keywords: Annotated[str | None, Query(description="Comma-separated")] = None,
    lookback_days: Annotated[int | None, Query(alias="lookbackDays", ge=1, le=3650)] = None,
) -> PricingResult:
    """Historical award prices for competitive bidding."""
    params = PriceLookupParams(
        nsn=nsn or None,
        psc=psc or None,
        naics_code=naics or None,
        keywords=[k.strip() for k in keywords.split(",") if k.strip()] if keywords else None,
        lookback_days=lookback_days or settings.pricing_default_lookback_days,
    )
    if not params.has_criteria:
        raise ValidationException("At least one search parameter is required: nsn, psc, naics, or keywords")

    logger.info("SAM.gov pricing lookup", nsn=params.nsn, psc=params.psc, naics=params.naics_code)
    return await PriceLookupService(db, client, settings=settings).lookup_pricing(params)
