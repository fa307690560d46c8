from datetime import datetime, timezone

import httpx
import pytest

from samgov_intel.core.exceptions import SamGovApiException, ServiceNotConfiguredException
from samgov_intel.sam.client import SamGovClient
from samgov_intel.sam.models import AwardSearchParams, OpportunitySearchParams
from tests.factories import award_payload, awards_page, opportunity_payload, opportunities_page


def search_params(**overrides) -> OpportunitySearchParams:
    values = {"posted_from": "03/08/2026", "posted_to": "03/15/2026"}
    values.update(overrides)
    return OpportunitySearchParams(**values)


async def test_search_opportunities_sends_query(make_sam_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=opportunities_page(opportunity_payload()))

    client = make_sam_client(handler)
    response = await client.search_opportunities(
        search_params(classification_code="6810", keywords="acetone", limit=5000)
    )

    assert len(response.opportunities) == 1
    request = requests[0]
    assert request.url.path == "/opportunities/v2/search"
    assert request.url.params["api_key"] == "test-key"
    assert request.url.params["postedFrom"] == "03/08/2026"
    assert request.url.params["postedTo"] == "03/15/2026"
    assert request.url.params["ccode"] == "6810"
    assert request.url.params["title"] == "acetone"
    assert request.url.params["limit"] == "1000"


async def test_search_without_code_is_unrestricted(make_sam_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=opportunities_page())

    await make_sam_client(handler).search_opportunities(search_params())

    assert "ccode" not in requests[0].url.params
    assert "title" not in requests[0].url.params


async def test_server_errors_are_retried(make_sam_client):
    responses = iter(
        [
            httpx.Response(500, text="upstream hiccup"),
            httpx.Response(200, json=opportunities_page(opportunity_payload())),
        ]
    )
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return next(responses)

    response = await make_sam_client(handler).search_opportunities(search_params())

    assert len(calls) == 2
    assert response.total_records == 1


async def test_transport_errors_are_retried(make_sam_client):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=opportunities_page())

    await make_sam_client(handler).search_opportunities(search_params())

    assert len(calls) == 2


async def test_client_errors_are_not_retried(make_sam_client):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, text="Invalid postedFrom")

    with pytest.raises(SamGovApiException) as exc_info:
        await make_sam_client(handler).search_opportunities(search_params())

    assert len(calls) == 1
    assert exc_info.value.upstream_status == 400
    assert not exc_info.value.retryable
    assert "Invalid postedFrom" in exc_info.value.message


async def test_retries_stop_after_max_attempts(make_sam_client):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="maintenance")

    with pytest.raises(SamGovApiException) as exc_info:
        await make_sam_client(handler, sam_gov_max_attempts=3).search_opportunities(search_params())

    assert len(calls) == 3
    assert exc_info.value.upstream_status == 503


async def test_non_json_body_is_an_api_error(make_sam_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>Service maintenance</html>")

    with pytest.raises(SamGovApiException) as exc_info:
        await make_sam_client(handler).search_opportunities(search_params())

    assert exc_info.value.upstream_status == 200
    assert "invalid JSON body" in exc_info.value.message


async def test_search_awards_query(make_sam_client):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=awards_page(award_payload("SPE1-26-C-0001", unit_price=9.5)))

    response = await make_sam_client(handler).search_awards(
        AwardSearchParams(
            signed_date_from="01/01/2025",
            signed_date_to="12/31/2025",
            product_service_codes=["6810", "6840", "6850"],
            naics_code="424690",
            limit=50,
        )
    )

    params = requests[0].url.params
    assert requests[0].url.path == "/contract-awards/v1/search"
    assert params["signedDate"] == "[01/01/2025,12/31/2025]"
    assert params["productOrServiceCode"] == "6810~6840~6850"
    assert params["naicsCode"] == "424690"
    assert response.awards[0].unit_price == 9.5


async def test_details_resolve_description_link_and_extract_line_items(make_sam_client):
    description_url = "https://api.sam.gov/prod/opportunities/v1/noticedesc?noticeid=a1b2c3"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/prod/opportunities/v1/noticedesc":
            return httpx.Response(200, json={"description": "0001 - Acetone, 50 GAL\n0002 - Methanol, 10 DR"})
        return httpx.Response(
            200,
            json=opportunities_page(opportunity_payload(description=description_url)),
        )

    details = await make_sam_client(handler).get_opportunity_details("a1b2c3")

    assert details.full_description.startswith("0001 - Acetone")
    assert details.description == details.full_description
    assert details.line_item_strategy == "numbered_line"
    assert [item.line_number for item in details.line_items] == ["0001", "0002"]


async def test_details_survive_description_fetch_failure(make_sam_client):
    description_url = "https://api.sam.gov/prod/opportunities/v1/noticedesc?noticeid=a1b2c3"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/prod/opportunities/v1/noticedesc":
            return httpx.Response(500)
        return httpx.Response(
            200,
            json=opportunities_page(opportunity_payload(description=description_url)),
        )

    details = await make_sam_client(handler).get_opportunity_details("a1b2c3")

    assert details.full_description == ""
    assert details.line_items == []
    assert details.line_item_strategy is None


async def test_details_for_unknown_notice(make_sam_client):
    client = make_sam_client(lambda request: httpx.Response(200, json=opportunities_page()))

    assert await client.get_opportunity_details("missing") is None


def test_requires_api_key(settings):
    with pytest.raises(ServiceNotConfiguredException):
        SamGovClient(settings=settings.model_copy(update={"sam_gov_api_key": None}))


def test_masks_api_key_in_logged_urls(make_sam_client):
    client = make_sam_client(lambda request: httpx.Response(200))

    masked = client._masked("https://api.sam.gov/opportunities/v2/search", {"api_key": "test-key", "limit": 1})

    assert "test-key" not in masked
    assert "api_key=***" in masked


def test_date_helpers():
    now = datetime(2026, 3, 15, 12, tzinfo=timezone.utc)

    assert SamGovClient.format_date(now) == "03/15/2026"
    assert SamGovClient.date_range(7, now) == ("03/08/2026", "03/15/2026")


@pytest.mark.parametrize(
    "nsn, fsc",
    [("6810-01-234-5678", "6810"), ("6810012345678", "6810"), ("", "")],
)
def test_nsn_to_fsc(nsn, fsc):
    assert SamGovClient.nsn_to_fsc(nsn) == fsc
