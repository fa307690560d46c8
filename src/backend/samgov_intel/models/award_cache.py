"""
AwardCacheEntry model - local index of historical SAM.gov contract awards.

Awards are immutable historical facts: rows are inserted once (first write
wins) and never updated or deleted.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from samgov_intel.db.base import Base, JSONType, TimestampMixin


class AwardCacheEntry(Base, TimestampMixin):
    """A cached contract award used for price intelligence."""

    __tablename__ = "sam_gov_award_cache"

    contract_number: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    # Classification
    product_service_code: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    naics_code: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    description_keywords: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        comment="Extracted keywords for future free-text matching",
    )

    # Award facts
    award_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    total_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    action_obligation: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(15, 4), nullable=True)

    # Awardee
    awardee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    awardee_cage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    awardee_uei: Mapped[str | None] = mapped_column(String(20), nullable=True)
    contracting_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<AwardCacheEntry(contract='{self.contract_number}', psc='{self.product_service_code}')>"
