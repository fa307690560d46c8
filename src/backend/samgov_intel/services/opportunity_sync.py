"""
SAM.gov opportunity sync.

Pulls newly posted opportunities for every watched classification code,
filters them, stores the admitted ones and notifies about those seen for
the first time. One run at a time per configuration, guarded by the run
lease on the configuration row.
"""

import uuid
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from samgov_intel.core.config import Settings, get_settings
from samgov_intel.core.exceptions import EntityNotFoundException, NotificationException
from samgov_intel.core.logging import LoggerMixin
from samgov_intel.db.base import ensure_utc
from samgov_intel.models import (
    DEFAULT_TENANT,
    Opportunity,
    OpportunityStatus,
    SyncConfig,
    SyncStatus,
)
from samgov_intel.sam.client import SamGovClient
from samgov_intel.sam.models import OpportunityRecord, OpportunitySearchParams
from samgov_intel.sam.parsing import parse_date
from samgov_intel.schemas.sync import SyncResult
from samgov_intel.schemas.sync_config import SyncConfigResponse, SyncConfigUpdate
from samgov_intel.services.filters import matches_filters
from samgov_intel.services.notifier import GraphNotifier, build_notification
from samgov_intel.services.sync_lock import SyncRunLease

LIST_FIELDS = ("classification_codes", "keywords", "excluded_keywords", "agencies", "set_aside_types")


def _truncate(value: str | None, max_length: int) -> str | None:
    if not value:
        return None
    return value[:max_length]


class OpportunitySyncService(LoggerMixin):
    """Sync configuration, the sync run itself, and reviewer status changes."""

    def __init__(
        self,
        session: AsyncSession,
        client: SamGovClient | None,
        notifier: GraphNotifier | None = None,
        settings: Settings | None = None,
        tenant_id: str = DEFAULT_TENANT,
    ) -> None:
        self.session = session
        self.client = client
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.tenant_id = tenant_id

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def get_sync_config(self) -> SyncConfig | None:
        # Telemetry and lease columns are written with Core UPDATEs
        result = await self.session.execute(
            select(SyncConfig)
            .where(SyncConfig.tenant_id == self.tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_sync_config(self, changes: SyncConfigUpdate) -> SyncConfig:
        """Create the configuration on first save, otherwise apply the fields sent."""
        config = await self.get_sync_config()
        if config is None:
            config = SyncConfig(
                tenant_id=self.tenant_id,
                enabled=True,
                sync_interval_hours=1,
                total_opportunities_found=0,
                **{field: [] for field in LIST_FIELDS},
            )
            self.session.add(config)

        for field, value in changes.model_dump(exclude_unset=True).items():
            if field in LIST_FIELDS:
                value = [item.strip() for item in value or [] if item and item.strip()]
            elif value is None and field in ("enabled", "sync_interval_hours"):
                continue
            setattr(config, field, value)

        await self.session.flush()
        await self.session.refresh(config)

        self.logger.info(
            "Sync configuration saved",
            enabled=config.enabled,
            classification_codes=config.classification_codes,
        )
        return config

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def _find_by_solicitation(self, solicitation_number: str) -> Opportunity | None:
        result = await self.session.execute(
            select(Opportunity).where(Opportunity.solicitation_number == solicitation_number)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _opportunity_values(record: OpportunityRecord) -> dict[str, Any]:
        """Descriptive columns; status and dismissal reason are never touched here."""
        contact = record.primary_contact
        award = record.award
        return {
            "notice_id": _truncate(record.notice_id, 100),
            "title": record.title,
            "description": record.description or None,
            "posted_date": parse_date(record.posted_date),
            "response_deadline": parse_date(record.response_deadline),
            "classification_code": _truncate(record.classification_code, 10),
            "naics_code": _truncate(record.naics_code, 10),
            "set_aside_type": _truncate(record.set_aside_type, 100),
            "agency": _truncate(record.agency, 255),
            "office": _truncate(record.office, 255),
            "poc_name": _truncate(contact.name if contact else None, 255),
            "poc_email": _truncate(contact.email if contact else None, 255),
            "poc_phone": _truncate(contact.phone if contact else None, 50),
            "ui_link": record.ui_link or None,
            "attachments": [asdict(attachment) for attachment in record.attachments],
            "award_amount": Decimal(str(award.amount)) if award is not None else None,
            "awardee_name": _truncate(award.awardee if award else None, 255),
            "award_date": parse_date(award.award_date) if award else None,
            "raw_data": record.raw_data,
        }

    async def _refresh_existing(self, opportunity: Opportunity, values: dict[str, Any]) -> None:
        for field, value in values.items():
            setattr(opportunity, field, value)
        await self.session.flush()

    async def store_opportunity(self, record: OpportunityRecord) -> bool:
        """
        Insert or refresh one opportunity keyed by solicitation number.

        Returns:
            True if a row was created, False if an existing row was refreshed
        """
        values = self._opportunity_values(record)

        existing = await self._find_by_solicitation(record.solicitation_number)
        if existing is not None:
            await self._refresh_existing(existing, values)
            return False

        try:
            async with self.session.begin_nested():
                self.session.add(
                    Opportunity(
                        solicitation_number=record.solicitation_number,
                        status=OpportunityStatus.NEW,
                        **values,
                    )
                )
        except IntegrityError:
            # Another writer inserted the same solicitation first
            self.logger.info(
                "Concurrent insert detected, refreshing instead",
                solicitation_number=record.solicitation_number,
            )
            existing = await self._find_by_solicitation(record.solicitation_number)
            if existing is not None:
                await self._refresh_existing(existing, values)
            return False

        return True

    # ------------------------------------------------------------------
    # Sync run
    # ------------------------------------------------------------------

    def _window(self, last_success_at: datetime | None, now: datetime) -> tuple[str, str]:
        start = ensure_utc(last_success_at) or now - timedelta(days=self.settings.sync_cold_start_days)
        return SamGovClient.format_date(start), SamGovClient.format_date(now)

    async def sync_opportunities(self, now: datetime | None = None) -> SyncResult:
        """
        Run one sync.

        Precondition failures (no config, disabled, no API key, lease held
        elsewhere) return an unsuccessful result without touching anything.
        Past that point the outcome is always recorded on the configuration.
        """
        now = now or datetime.now(timezone.utc)
        result = SyncResult()

        config = await self.get_sync_config()
        if config is None:
            result.errors.append("No sync configuration found. Please configure SAM.gov settings.")
            return result
        if not config.enabled:
            result.errors.append("SAM.gov sync is disabled.")
            return result
        if self.client is None:
            result.errors.append("SAM_GOV_API_KEY is not configured.")
            return result

        config_id = config.id
        criteria = SyncConfigResponse.model_validate(config)

        lease = SyncRunLease(self.session, config_id, self.settings.sync_lease_seconds)
        if not await lease.acquire(now):
            result.errors.append("A sync is already running.")
            return result

        try:
            try:
                await self._run(criteria, now, result)
                status = SyncStatus.PARTIAL if result.errors else SyncStatus.SUCCESS
            except Exception as e:
                await self.session.rollback()
                result.errors.append(f"Sync failed: {e}")
                status = SyncStatus.FAILED
                self.logger.exception("SAM.gov opportunity sync failed")

            await self._record_outcome(config_id, now, status, result)
        finally:
            await lease.release()

        result.success = not result.errors
        self.logger.info(
            "SAM.gov opportunity sync completed",
            status=status.value,
            new_opportunities=result.new_opportunities,
            total_found=result.total_found,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    async def _run(self, criteria: SyncConfigResponse, now: datetime, result: SyncResult) -> None:
        posted_from, posted_to = self._window(criteria.last_success_at, now)
        keywords = " ".join(criteria.keywords) or None
        # No watched codes means one unrestricted query
        codes: list[str | None] = list(criteria.classification_codes) or [None]

        self.logger.info(
            "Starting SAM.gov opportunity sync",
            posted_from=posted_from,
            posted_to=posted_to,
            classification_codes=criteria.classification_codes,
            keywords=keywords,
        )

        for code in codes:
            try:
                response = await self.client.search_opportunities(
                    OpportunitySearchParams(
                        posted_from=posted_from,
                        posted_to=posted_to,
                        classification_code=code,
                        keywords=keywords,
                        limit=self.settings.sync_page_limit,
                    )
                )
                result.total_found += response.total_records

                created: list[OpportunityRecord] = []
                for record in response.opportunities:
                    if not matches_filters(record, criteria):
                        result.skipped += 1
                        continue
                    if await self.store_opportunity(record):
                        created.append(record)
                await self.session.commit()

                result.new_records.extend(created)
                result.new_opportunities += len(created)
            except Exception as e:
                await self.session.rollback()
                result.errors.append(f"Error fetching classification code {code or '(any)'}: {e}")
                self.logger.error(
                    "Error fetching opportunities for classification code",
                    classification_code=code,
                    error=str(e),
                )

        if result.new_records and criteria.notification_email:
            await self._notify(result.new_records, criteria.notification_email)

    async def _notify(self, records: list[OpportunityRecord], recipient: str) -> None:
        if self.notifier is None:
            self.logger.warning("Notification skipped, Microsoft Graph is not configured", count=len(records))
            return

        subject, body = build_notification(records, self.settings.app_url)
        try:
            await self.notifier.send(recipient, subject, body)
        except NotificationException as e:
            self.logger.error(
                "SAM.gov notification e-mail failed",
                error=e.message,
                upstream_status=e.upstream_status,
                hint=e.details.get("hint"),
            )
        except Exception as e:
            self.logger.exception("SAM.gov notification e-mail failed", error=str(e))

    async def _record_outcome(
        self,
        config_id: uuid.UUID,
        now: datetime,
        status: SyncStatus,
        result: SyncResult,
    ) -> None:
        values: dict[str, Any] = {
            "last_sync_at": now,
            "last_sync_status": status.value,
            "last_sync_error": "; ".join(result.errors) or None,
            "total_opportunities_found": SyncConfig.total_opportunities_found + result.new_opportunities,
        }
        # Only a clean run moves the window forward
        if status == SyncStatus.SUCCESS:
            values["last_success_at"] = now

        await self.session.execute(
            update(SyncConfig)
            .where(SyncConfig.id == config_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def list_opportunities(
        self,
        limit: int = 50,
        status: OpportunityStatus | None = None,
    ) -> list[Opportunity]:
        """Most recently posted opportunities, optionally for one status."""
        query = select(Opportunity)
        if status is not None:
            query = query.where(Opportunity.status == status)
        query = query.order_by(
            Opportunity.posted_date.desc().nulls_last(),
            Opportunity.created_at.desc(),
        ).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_opportunity_status(
        self,
        opportunity_id: uuid.UUID,
        status: OpportunityStatus,
        dismissed_reason: str | None = None,
    ) -> Opportunity:
        opportunity = await self.session.get(Opportunity, opportunity_id)
        if opportunity is None:
            raise EntityNotFoundException("Opportunity", str(opportunity_id))

        opportunity.status = status
        opportunity.dismissed_reason = dismissed_reason or None

        await self.session.flush()
        await self.session.refresh(opportunity)

        self.logger.info("Opportunity status updated", id=str(opportunity_id), status=status.value)
        return opportunity
