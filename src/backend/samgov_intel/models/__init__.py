"""
SQLAlchemy ORM models for SAM.gov opportunity sync and pricing intelligence.

The three tables are independent facts: opportunities and cached awards
correlate only through classification / NAICS codes.
"""

from samgov_intel.models.award_cache import AwardCacheEntry
from samgov_intel.models.opportunity import Opportunity, OpportunityStatus
from samgov_intel.models.sync_config import DEFAULT_TENANT, SyncConfig, SyncStatus

__all__ = [
    # Award cache
    "AwardCacheEntry",
    # Opportunity
    "Opportunity",
    "OpportunityStatus",
    # Sync config
    "DEFAULT_TENANT",
    "SyncConfig",
    "SyncStatus",
]
