"""
SAM.gov API access: HTTP client, payload normalization and line-item extraction.
"""

from samgov_intel.sam.client import SamGovClient, close_sam_client, get_sam_client
from samgov_intel.sam.line_items import LineItemExtraction, LineItemStrategy, extract_line_items
from samgov_intel.sam.models import (
    AwardSearchParams,
    AwardSearchResponse,
    ContractAward,
    OpportunityDetails,
    OpportunityRecord,
    OpportunitySearchParams,
    OpportunitySearchResponse,
)

__all__ = [
    # Client
    "SamGovClient",
    "close_sam_client",
    "get_sam_client",
    # Line items
    "LineItemExtraction",
    "LineItemStrategy",
    "extract_line_items",
    # Records
    "AwardSearchParams",
    "AwardSearchResponse",
    "ContractAward",
    "OpportunityDetails",
    "OpportunityRecord",
    "OpportunitySearchParams",
    "OpportunitySearchResponse",
]
