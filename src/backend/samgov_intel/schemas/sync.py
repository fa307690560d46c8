"""
Schemas for sync runs.
"""

from pydantic import BaseModel, Field

from samgov_intel.sam.models import OpportunityRecord


class SyncResult(BaseModel):
    """
    Outcome of one sync run.

    ``success`` is False whenever ``errors`` is non-empty, including runs
    that never started because a precondition failed.
    """

    success: bool = False
    new_opportunities: int = 0
    total_found: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    # Records created by this run, for the notification; not serialized
    new_records: list[OpportunityRecord] = Field(default_factory=list, exclude=True)


class SyncResponse(BaseModel):
    """Body returned by the sync trigger endpoints."""

    success: bool
    message: str
    result: SyncResult
