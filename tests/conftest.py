import os

# Must be set before samgov_intel reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_FORMAT"] = "console"
for name in ("SAM_GOV_API_KEY", "SAM_GOV_SYNC_API_KEY", "GRAPH_TENANT_ID", "GRAPH_CLIENT_ID"):
    os.environ.pop(name, None)

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from samgov_intel.core.config import Settings
from samgov_intel.db.base import Base
from samgov_intel.db.session import create_engine
from samgov_intel.sam.client import SamGovClient

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        sam_gov_api_key="test-key",
        sam_gov_sync_api_key="sync-secret",
        sam_gov_retry_initial_wait=0,
        app_url="https://intel.example.com",
        allowed_origins="https://intel.example.com",
    )


@pytest.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_sam_client(settings: Settings):
    """Build a SamGovClient whose HTTP calls go to ``handler``."""

    def factory(handler: Handler, **overrides: Any) -> SamGovClient:
        client_settings = settings.model_copy(update=overrides) if overrides else settings
        transport = httpx.MockTransport(handler)
        return SamGovClient(settings=client_settings, http_client=httpx.AsyncClient(transport=transport))

    return factory

