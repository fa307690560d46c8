"""
Opportunity model - SAM.gov contract solicitations admitted by the sync.

One row per solicitation number. Re-ingestion refreshes the descriptive
columns; the review status is owned by staff and survives every sync.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Enum, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from samgov_intel.db.base import Base, JSONType, TimestampMixin


class OpportunityStatus(str, enum.Enum):
    """Review status of an opportunity."""

    NEW = "new"                 # Just ingested
    REVIEWED = "reviewed"       # Looked at by staff
    IMPORTED = "imported"       # Turned into an RFQ
    DISMISSED = "dismissed"     # Not worth pursuing


class Opportunity(Base, TimestampMixin):
    """
    A contract opportunity pulled from the SAM.gov Opportunities API.

    Only the first point of contact is retained. ``raw_data`` keeps the
    full upstream payload for fields not modelled here.
    """

    __tablename__ = "sam_gov_opportunities"

    # Identity
    solicitation_number: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    notice_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Basic Information
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Dates
    posted_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    response_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Classification
    classification_code: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    naics_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    set_aside_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Agency
    agency: Mapped[str | None] = mapped_column(String(255), nullable=True)
    office: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Point of contact
    poc_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poc_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poc_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Links
    ui_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)

    # Award
    award_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    awardee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    award_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Tracking
    status: Mapped[OpportunityStatus] = mapped_column(
        Enum(
            OpportunityStatus,
            name="samopportunitystatus",
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=OpportunityStatus.NEW,
        nullable=False,
        index=True,
    )
    dismissed_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Metadata
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Raw SAM.gov payload",
    )

    def __repr__(self) -> str:
        return f"<Opportunity(solicitation='{self.solicitation_number}', status='{self.status.value}')>"
