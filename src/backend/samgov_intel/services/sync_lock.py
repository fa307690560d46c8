"""
Run lease for the opportunity sync.

The lease lives on the sync configuration row. Claiming it is a single
conditional UPDATE, so two workers racing for the same row cannot both
win; an expired lease (crashed worker) can be taken over.
"""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from samgov_intel.core.logging import LoggerMixin
from samgov_intel.models import SyncConfig


class SyncRunLease(LoggerMixin):
    """Time-bounded exclusive claim on one sync configuration."""

    def __init__(
        self,
        session: AsyncSession,
        config_id: uuid.UUID,
        lease_seconds: int,
        owner: str | None = None,
    ) -> None:
        self.session = session
        self.config_id = config_id
        self.lease_seconds = lease_seconds
        self.owner = owner or uuid.uuid4().hex
        self.held = False

    async def acquire(self, now: datetime | None = None) -> bool:
        """Claim the lease if it is free or expired. Returns whether it was claimed."""
        now = now or datetime.now(timezone.utc)
        stmt = (
            update(SyncConfig)
            .where(SyncConfig.id == self.config_id)
            .where(
                or_(
                    SyncConfig.sync_lock_owner.is_(None),
                    SyncConfig.sync_lock_expires_at.is_(None),
                    SyncConfig.sync_lock_expires_at < now,
                )
            )
            .values(
                sync_lock_owner=self.owner,
                sync_lock_expires_at=now + timedelta(seconds=self.lease_seconds),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()

        self.held = result.rowcount == 1
        if self.held:
            self.logger.info("Sync lease acquired", owner=self.owner, lease_seconds=self.lease_seconds)
        else:
            self.logger.info("Sync lease busy", config_id=str(self.config_id))
        return self.held

    async def release(self) -> None:
        """Give the lease back, but only if this owner still holds it."""
        if not self.held:
            return
        stmt = (
            update(SyncConfig)
            .where(SyncConfig.id == self.config_id)
            .where(SyncConfig.sync_lock_owner == self.owner)
            .values(sync_lock_owner=None, sync_lock_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()
        self.held = False
        self.logger.info("Sync lease released", owner=self.owner)
