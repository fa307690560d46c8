"""
SyncConfig model - the singleton SAM.gov sync configuration.

Holds the filter set applied to incoming opportunities, scheduling and
notification settings, run telemetry, and the lease that keeps two
scheduler-triggered runs from overlapping.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from samgov_intel.db.base import Base, JSONType, TimestampMixin

DEFAULT_TENANT = "default"


class SyncStatus(str, enum.Enum):
    """Outcome of the most recent sync run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncConfig(Base, TimestampMixin):
    """
    Sync configuration, one row per tenant.

    Empty lists mean "no restriction" for the corresponding filter.
    """

    __tablename__ = "sam_gov_sync_config"

    tenant_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        default=DEFAULT_TENANT,
    )

    # Filters
    classification_codes: Mapped[list[str]] = mapped_column(JSONType, default=list)
    keywords: Mapped[list[str]] = mapped_column(JSONType, default=list)
    excluded_keywords: Mapped[list[str]] = mapped_column(JSONType, default=list)
    agencies: Mapped[list[str]] = mapped_column(JSONType, default=list)
    set_aside_types: Mapped[list[str]] = mapped_column(JSONType, default=list)
    min_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)

    # Scheduling / notification
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sync_interval_hours: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    notification_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Telemetry
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_success_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Start of the next ingestion window",
    )
    last_sync_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_opportunities_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Run lease
    sync_lock_owner: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sync_lock_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SyncConfig(tenant='{self.tenant_id}', enabled={self.enabled}, status='{self.last_sync_status}')>"
