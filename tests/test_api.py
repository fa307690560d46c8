from collections.abc import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from samgov_intel.core.config import get_settings
from samgov_intel.db.session import get_db
from samgov_intel.main import create_application
from samgov_intel.models import Opportunity, OpportunityStatus
from samgov_intel.sam.client import get_sam_client
from samgov_intel.services.notifier import get_notifier
from tests.factories import award_payload, awards_page, opportunities_page, opportunity_payload

BASE_URL = "http://testserver"
SYNC_URL = "/api/v1/sam-gov/sync"
CONFIG_URL = "/api/v1/sam-gov/config"
OPPORTUNITIES_URL = "/api/v1/sam-gov/opportunities"
PRICING_URL = "/api/v1/sam-gov/pricing"


def sam_gov_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/contract-awards/v1/search":
        return httpx.Response(200, json=awards_page(award_payload("SPE1-25-C-0001", unit_price=10.0)))
    if "noticeid" in request.url.params:
        if request.url.params["noticeid"] != "a1b2c3":
            return httpx.Response(200, json=opportunities_page())
        raw = opportunity_payload(
            lineItems=[{"lineNumber": "0001", "description": "Acetone", "quantity": 50, "unitOfMeasure": "GAL"}]
        )
        return httpx.Response(200, json=opportunities_page(raw))
    return httpx.Response(200, json=opportunities_page(opportunity_payload()))


@pytest.fixture
def build_app(session_factory, settings, make_sam_client):
    def factory(app_settings=None, with_sam_client=True):
        app_settings = app_settings or settings
        sam_client = make_sam_client(sam_gov_handler) if with_sam_client else None
        app = create_application()

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: app_settings
        app.dependency_overrides[get_sam_client] = lambda: sam_client
        app.dependency_overrides[get_notifier] = lambda: None
        return app

    return factory


@pytest.fixture
def api(build_app):
    """Async client bound to the default app."""

    async def request(method: str, url: str, app=None, **kwargs) -> httpx.Response:
        transport = httpx.ASGITransport(app=app or build_app())
        async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
            return await client.request(method, url, **kwargs)

    return request


async def test_health(api):
    response = await api("GET", "/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestConfigEndpoints:
    async def test_defaults_before_first_save(self, api):
        response = await api("GET", CONFIG_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["is_api_key_configured"] is True
        assert body["config"]["enabled"] is False
        assert body["config"]["classification_codes"] == []

    async def test_save_and_read_back(self, api):
        saved = await api(
            "POST",
            CONFIG_URL,
            json={"classification_codes": ["6810"], "notification_email": "buyer@example.com"},
        )
        assert saved.status_code == 200
        assert saved.json()["config"]["enabled"] is True

        response = await api("GET", CONFIG_URL)

        config = response.json()["config"]
        assert config["classification_codes"] == ["6810"]
        assert config["notification_email"] == "buyer@example.com"

    async def test_cannot_enable_without_api_key(self, api, build_app, settings):
        app = build_app(
            app_settings=settings.model_copy(update={"sam_gov_api_key": None}),
            with_sam_client=False,
        )

        response = await api("POST", CONFIG_URL, app=app, json={"enabled": True})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_fields_are_rejected(self, api):
        response = await api("POST", CONFIG_URL, json={"classification_code": "6810"})

        assert response.status_code == 422


class TestSyncEndpoints:
    async def test_scheduler_needs_configured_key(self, api, build_app, settings):
        app = build_app(app_settings=settings.model_copy(update={"sam_gov_sync_api_key": None}))

        response = await api("GET", SYNC_URL, app=app, headers={"x-api-key": "anything"})

        assert response.status_code == 503

    async def test_scheduler_rejects_wrong_key(self, api):
        response = await api("GET", SYNC_URL, headers={"x-api-key": "wrong"})

        assert response.status_code == 401

    async def test_scheduler_runs_sync(self, api):
        await api("POST", CONFIG_URL, json={"classification_codes": ["6810"]})

        response = await api("GET", SYNC_URL, headers={"x-api-key": "sync-secret"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"]["new_opportunities"] == 1
        assert "new_records" not in body["result"]

    async def test_precondition_failure_is_multi_status(self, api):
        response = await api("GET", SYNC_URL, headers={"x-api-key": "sync-secret"})

        assert response.status_code == 207
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Sync completed with errors"
        assert body["result"]["errors"] == ["No sync configuration found. Please configure SAM.gov settings."]

    async def test_manual_sync_from_foreign_origin_is_forbidden(self, api):
        response = await api("POST", SYNC_URL, headers={"origin": "https://evil.example.com"})

        assert response.status_code == 403

    async def test_manual_sync_same_origin(self, api):
        await api("POST", CONFIG_URL, json={"classification_codes": ["6810"]})

        response = await api("POST", SYNC_URL, headers={"origin": BASE_URL})

        assert response.status_code == 200

    async def test_manual_sync_with_api_key(self, api):
        await api("POST", CONFIG_URL, json={"classification_codes": ["6810"]})

        response = await api("POST", SYNC_URL, headers={"x-api-key": "sync-secret"})

        assert response.status_code == 200

    async def test_manual_sync_from_configured_origin(self, api):
        response = await api("POST", SYNC_URL, headers={"origin": "https://intel.example.com"})

        # Allowed through, then fails the no-config precondition
        assert response.status_code == 207


class TestOpportunityEndpoints:
    async def seed(self, session_factory) -> Opportunity:
        async with session_factory() as session:
            opportunity = Opportunity(
                solicitation_number="SPE4A7-26-Q-0001",
                title="Acetone, technical grade",
                status=OpportunityStatus.NEW,
                attachments=[],
            )
            session.add(opportunity)
            await session.commit()
            return opportunity

    async def test_list_and_update_status(self, api, session_factory):
        opportunity = await self.seed(session_factory)

        listed = await api("GET", OPPORTUNITIES_URL, params={"status": "new"})
        assert listed.status_code == 200
        assert listed.json()["count"] == 1

        response = await api(
            "PATCH",
            f"{OPPORTUNITIES_URL}/{opportunity.id}",
            json={"status": "dismissed", "dismissed_reason": "Out of scope"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "dismissed"
        assert response.json()["dismissed_reason"] == "Out of scope"

        remaining = await api("GET", OPPORTUNITIES_URL, params={"status": "new"})
        assert remaining.json()["count"] == 0

    async def test_update_unknown_opportunity(self, api):
        response = await api(
            "PATCH",
            f"{OPPORTUNITIES_URL}/00000000-0000-0000-0000-000000000000",
            json={"status": "reviewed"},
        )

        assert response.status_code == 404

    async def test_update_rejects_unknown_status(self, api, session_factory):
        opportunity = await self.seed(session_factory)

        response = await api("PATCH", f"{OPPORTUNITIES_URL}/{opportunity.id}", json={"status": "archived"})

        assert response.status_code == 422

    async def test_notice_details(self, api):
        response = await api("GET", f"{OPPORTUNITIES_URL}/notice/a1b2c3")

        assert response.status_code == 200
        body = response.json()
        assert body["line_item_strategy"] == "api"
        assert body["line_items"][0]["quantity"] == 50
        assert "raw_data" not in body

    async def test_unknown_notice(self, api):
        response = await api("GET", f"{OPPORTUNITIES_URL}/notice/zzz999")

        assert response.status_code == 404

    async def test_notice_details_need_api_key(self, api, build_app):
        response = await api("GET", f"{OPPORTUNITIES_URL}/notice/a1b2c3", app=build_app(with_sam_client=False))

        assert response.status_code == 503


class TestPricingEndpoint:
    async def test_requires_a_criterion(self, api):
        response = await api("GET", PRICING_URL)

        assert response.status_code == 400

    async def test_lookup(self, api):
        response = await api("GET", PRICING_URL, params={"psc": "6810", "lookbackDays": 365})

        assert response.status_code == 200
        body = response.json()
        assert body["found"] is True
        assert body["search_codes"] == ["6810"]
        assert body["search_params"]["lookback_days"] == 365
        assert body["awards"][0]["contract_number"] == "SPE1-25-C-0001"

    async def test_keywords_only_returns_no_data(self, api):
        response = await api("GET", PRICING_URL, params={"keywords": "acetone, solvent"})

        assert response.status_code == 200
        body = response.json()
        assert body["found"] is False
        assert body["search_params"]["keywords"] == ["acetone", "solvent"]
