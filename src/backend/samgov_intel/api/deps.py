"""
Shared FastAPI dependencies.

Tests replace these through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from samgov_intel.core.config import Settings, get_settings
from samgov_intel.db.session import get_db
from samgov_intel.sam.client import SamGovClient, get_sam_client
from samgov_intel.services.notifier import GraphNotifier, get_notifier

DB = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
SamClient = Annotated[SamGovClient | None, Depends(get_sam_client)]
Notifier = Annotated[GraphNotifier | None, Depends(get_notifier)]
