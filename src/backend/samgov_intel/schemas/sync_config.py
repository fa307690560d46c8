"""
Schemas for the SAM.gov sync configuration API.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from samgov_intel.models.sync_config import DEFAULT_TENANT
from samgov_intel.schemas.common import BaseSchema


class SyncConfigUpdate(BaseModel):
    """
    Partial update of the sync configuration.

    Only fields present in the request body are applied, so an explicit
    ``null`` clears ``min_value`` or ``notification_email`` while an absent
    field leaves it untouched.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    classification_codes: list[str] | None = None
    keywords: list[str] | None = None
    excluded_keywords: list[str] | None = None
    agencies: list[str] | None = None
    set_aside_types: list[str] | None = None
    min_value: Decimal | None = Field(default=None, ge=0)
    enabled: bool | None = None
    sync_interval_hours: int | None = Field(default=None, ge=1, le=168)
    notification_email: str | None = Field(default=None, max_length=255)


class SyncConfigResponse(BaseSchema):
    """Sync configuration with run telemetry."""

    id: UUID | None = None
    tenant_id: str = DEFAULT_TENANT
    classification_codes: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    excluded_keywords: list[str] = Field(default_factory=list)
    agencies: list[str] = Field(default_factory=list)
    set_aside_types: list[str] = Field(default_factory=list)
    min_value: Decimal | None = None
    enabled: bool = False
    sync_interval_hours: int = 1
    notification_email: str | None = None
    last_sync_at: datetime | None = None
    last_success_at: datetime | None = None
    last_sync_status: str | None = None
    last_sync_error: str | None = None
    total_opportunities_found: int = 0


class SyncConfigEnvelope(BaseModel):
    """GET /config payload."""

    config: SyncConfigResponse
    is_api_key_configured: bool
