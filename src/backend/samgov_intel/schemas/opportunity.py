"""
Schemas for the SAM.gov opportunity API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from samgov_intel.models.opportunity import OpportunityStatus


class OpportunityResponse(BaseModel):
    """Schema for a stored opportunity."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    solicitation_number: str
    notice_id: str | None
    title: str
    description: str | None
    posted_date: datetime | None
    response_deadline: datetime | None
    classification_code: str | None
    naics_code: str | None
    set_aside_type: str | None
    agency: str | None
    office: str | None
    poc_name: str | None
    poc_email: str | None
    poc_phone: str | None
    ui_link: str | None
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    award_amount: Decimal | None
    awardee_name: str | None
    award_date: datetime | None
    status: OpportunityStatus
    dismissed_reason: str | None
    created_at: datetime
    updated_at: datetime


class OpportunityListResponse(BaseModel):
    """List of recent opportunities."""

    opportunities: list[OpportunityResponse]
    count: int


class OpportunityStatusUpdate(BaseModel):
    """Status transition requested by a reviewer."""

    model_config = ConfigDict(extra="forbid")

    status: OpportunityStatus
    dismissed_reason: str | None = Field(default=None, max_length=2000)


class AttachmentSchema(BaseModel):
    name: str
    url: str
    type: str
    size: int | None = None


class ContactSchema(BaseModel):
    name: str
    email: str
    phone: str
    type: str


class LineItemSchema(BaseModel):
    line_number: str
    description: str
    quantity: int | None
    unit: str
    nsn: str
    part_number: str


class OpportunityAwardSchema(BaseModel):
    amount: float
    awardee: str
    award_date: str


class OpportunityDetailsResponse(BaseModel):
    """Full live record for one notice, with line items."""

    model_config = ConfigDict(from_attributes=True)

    notice_id: str
    solicitation_number: str
    title: str
    description: str
    full_description: str
    posted_date: str
    response_deadline: str
    archive_date: str
    classification_code: str
    naics_code: str
    set_aside_type: str | None
    contract_type: str
    agency: str
    office: str
    location: str | None
    contacts: list[ContactSchema] = Field(default_factory=list)
    attachments: list[AttachmentSchema] = Field(default_factory=list)
    line_items: list[LineItemSchema] = Field(default_factory=list)
    line_item_strategy: str | None = Field(
        default=None,
        description='"api" when the API supplied line items, else the text heuristic that matched',
    )
    award: OpportunityAwardSchema | None = None
    ui_link: str
