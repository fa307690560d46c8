"""
Pydantic schemas for API request/response validation.
"""

from samgov_intel.schemas.common import (
    BaseSchema,
    HealthResponse,
)
from samgov_intel.schemas.opportunity import (
    OpportunityDetailsResponse,
    OpportunityListResponse,
    OpportunityResponse,
    OpportunityStatusUpdate,
)
from samgov_intel.schemas.pricing import (
    AwardSummary,
    PriceLookupParams,
    PriceStatistics,
    PricingResult,
)
from samgov_intel.schemas.sync import SyncResponse, SyncResult
from samgov_intel.schemas.sync_config import (
    SyncConfigEnvelope,
    SyncConfigResponse,
    SyncConfigUpdate,
)

__all__ = [
    # Common
    "BaseSchema",
    "HealthResponse",
    # Opportunity
    "OpportunityDetailsResponse",
    "OpportunityListResponse",
    "OpportunityResponse",
    "OpportunityStatusUpdate",
    # Pricing
    "AwardSummary",
    "PriceLookupParams",
    "PriceStatistics",
    "PricingResult",
    # Sync
    "SyncResponse",
    "SyncResult",
    "SyncConfigEnvelope",
    "SyncConfigResponse",
    "SyncConfigUpdate",
]
