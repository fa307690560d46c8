"""
SAM.gov sync configuration endpoints.
"""

from fastapi import APIRouter

from samgov_intel.api.deps import DB, AppSettings, SamClient
from samgov_intel.core.exceptions import ValidationException
from samgov_intel.core.logging import get_logger
from samgov_intel.schemas.sync_config import (
    SyncConfigEnvelope,
    SyncConfigResponse,
    SyncConfigUpdate,
)
from samgov_intel.services.opportunity_sync import OpportunitySyncService

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=SyncConfigEnvelope)
async def get_config(db: DB, client: SamClient, settings: AppSettings) -> SyncConfigEnvelope:
    """Current configuration, or the defaults if nothing has been saved yet."""
    config = await OpportunitySyncService(db, client, settings=settings).get_sync_config()
    return SyncConfigEnvelope(
        config=SyncConfigResponse.model_validate(config) if config else SyncConfigResponse(),
        is_api_key_configured=bool(settings.sam_gov_api_key),
    )


@router.post("", response_model=SyncConfigEnvelope)
async def save_config(
    db: DB,
    client: SamClient,
    settings: AppSettings,
    data: SyncConfigUpdate,
) -> SyncConfigEnvelope:
    """Create or update the configuration."""
    if data.enabled and not settings.sam_gov_api_key:
        raise ValidationException(
            "Cannot enable sync: SAM_GOV_API_KEY is not configured",
            {"enabled": ["requires SAM_GOV_API_KEY"]},
        )

    config = await OpportunitySyncService(db, client, settings=settings).upsert_sync_config(data)
    return SyncConfigEnvelope(
        config=SyncConfigResponse.model_validate(config),
        is_api_key_configured=bool(settings.sam_gov_api_key),
    )
