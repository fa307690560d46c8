"""
Main API router that aggregates all endpoint routers.
"""

from fastapi import APIRouter

from samgov_intel.api.endpoints import opportunities, pricing, sync, sync_config

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    sync_config.router,
    prefix="/sam-gov/config",
    tags=["Sync Configuration"],
)

api_router.include_router(
    sync.router,
    prefix="/sam-gov/sync",
    tags=["Sync Operations"],
)

api_router.include_router(
    opportunities.router,
    prefix="/sam-gov/opportunities",
    tags=["Opportunities"],
)

api_router.include_router(
    pricing.router,
    prefix="/sam-gov/pricing",
    tags=["Pricing"],
)
