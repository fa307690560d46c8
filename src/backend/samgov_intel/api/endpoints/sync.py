"""
SAM.gov sync trigger endpoints.

GET is for schedulers and requires the shared sync key in ``x-api-key``.
POST is the manual trigger from the web UI: same-origin requests are
accepted, anything else needs the same key.
"""

from typing import Annotated

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from samgov_intel.api.deps import DB, AppSettings, Notifier, SamClient
from samgov_intel.core.config import Settings
from samgov_intel.core.exceptions import (
    AuthenticationException,
    ForbiddenException,
    ServiceNotConfiguredException,
)
from samgov_intel.core.logging import get_logger
from samgov_intel.schemas.sync import SyncResponse
from samgov_intel.services.opportunity_sync import OpportunitySyncService

logger = get_logger(__name__)
router = APIRouter()

ApiKey = Annotated[str | None, Header(alias="x-api-key")]


def _is_same_origin(request: Request, settings: Settings) -> bool:
    origin = request.headers.get("origin")
    host = request.headers.get("host")
    if not origin:
        return False
    if host and origin in (f"https://{host}", f"http://{host}"):
        return True
    return origin in settings.cors_origins


async def _run_sync(db: DB, client: SamClient, notifier: Notifier, settings: Settings) -> JSONResponse:
    service = OpportunitySyncService(db, client, notifier=notifier, settings=settings)
    result = await service.sync_opportunities()

    if not result.success and result.errors:
        body = SyncResponse(success=False, message="Sync completed with errors", result=result)
        return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=body.model_dump(mode="json"))

    body = SyncResponse(success=True, message="Sync completed successfully", result=result)
    return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(mode="json"))


@router.get("", response_model=SyncResponse, responses={207: {"model": SyncResponse}})
async def scheduled_sync(
    db: DB,
    client: SamClient,
    notifier: Notifier,
    settings: AppSettings,
    x_api_key: ApiKey = None,
) -> JSONResponse:
    """Scheduler trigger; requires ``x-api-key``."""
    if not settings.sam_gov_sync_api_key:
        logger.warning("Scheduled sync attempted but SAM_GOV_SYNC_API_KEY is not configured")
        raise ServiceNotConfiguredException(
            "SAM_GOV_SYNC_API_KEY",
            "SAM_GOV_SYNC_API_KEY not configured. Set this environment variable to enable scheduled sync.",
        )
    if x_api_key != settings.sam_gov_sync_api_key:
        logger.warning("Scheduled sync attempted with invalid API key")
        raise AuthenticationException()

    logger.info("SAM.gov sync triggered by scheduler")
    return await _run_sync(db, client, notifier, settings)


@router.post("", response_model=SyncResponse, responses={207: {"model": SyncResponse}})
async def manual_sync(
    request: Request,
    db: DB,
    client: SamClient,
    notifier: Notifier,
    settings: AppSettings,
    x_api_key: ApiKey = None,
) -> JSONResponse:
    """Manual trigger from the application UI."""
    has_api_key = bool(settings.sam_gov_sync_api_key) and x_api_key == settings.sam_gov_sync_api_key
    if not _is_same_origin(request, settings) and not has_api_key:
        logger.warning(
            "Manual sync attempted from external origin",
            origin=request.headers.get("origin"),
            host=request.headers.get("host"),
        )
        raise ForbiddenException("Forbidden - must be called from application UI or with API key")

    logger.info("SAM.gov sync triggered manually", origin=request.headers.get("origin"))
    return await _run_sync(db, client, notifier, settings)
