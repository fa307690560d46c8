"""
SAM.gov API client.

Provides access to:
- Get Opportunities API (contract opportunities / solicitations)
- Contract Awards API (historical award data)

Every request goes through a tenacity retry policy: transport errors and
5xx responses are retried with exponential backoff, 4xx responses are
raised immediately because the request itself is wrong.

See https://open.gsa.gov/api/get-opportunities-public-api/ and
https://open.gsa.gov/api/contract-awards/
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from samgov_intel.core.config import Settings, get_settings
from samgov_intel.core.exceptions import SamGovApiException, ServiceNotConfiguredException
from samgov_intel.core.logging import LoggerMixin, get_logger
from samgov_intel.sam.line_items import extract_line_items
from samgov_intel.sam.models import (
    AwardSearchParams,
    AwardSearchResponse,
    OpportunityDetails,
    OpportunitySearchParams,
    OpportunitySearchResponse,
)
from samgov_intel.sam.parsing import (
    parse_award_page,
    parse_opportunity_details,
    parse_opportunity_page,
)

logger = get_logger(__name__)

OPPORTUNITIES_MAX_LIMIT = 1000
AWARDS_MAX_CODES = 100


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, SamGovApiException):
        return error.retryable
    return isinstance(error, httpx.TransportError)


class SamGovClient(LoggerMixin):
    """Async client for the SAM.gov opportunity and award search endpoints."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if not self.settings.sam_gov_api_key:
            raise ServiceNotConfiguredException("SAM_GOV_API_KEY")

        self.api_key = self.settings.sam_gov_api_key
        self.base_url = self.settings.sam_gov_base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self.settings.sam_gov_timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _masked(self, url: str, params: dict[str, Any]) -> str:
        return str(httpx.URL(url, params=params)).replace(self.api_key, "***")

    def _retrying(self, endpoint: str) -> AsyncRetrying:
        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            self.logger.warning(
                "Retrying SAM.gov request",
                endpoint=endpoint,
                attempt=state.attempt_number,
                error=str(error),
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.settings.sam_gov_max_attempts),
            wait=wait_exponential(multiplier=self.settings.sam_gov_retry_initial_wait, max=60),
            retry=retry_if_exception(_is_retryable),
            before_sleep=log_retry,
            reraise=True,
        )

    async def _get_json(self, endpoint: str, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        params = {"api_key": self.api_key, **params}
        self.logger.info("Fetching SAM.gov data", endpoint=endpoint, url=self._masked(url, params))

        async for attempt in self._retrying(endpoint):
            with attempt:
                response = await self._http.get(url, params=params)
                if response.is_error:
                    raise SamGovApiException(endpoint, response.status_code, response.text)
                try:
                    return response.json()
                except ValueError as e:
                    raise SamGovApiException(endpoint, response.status_code, "invalid JSON body") from e

    # ------------------------------------------------------------------
    # Opportunities API
    # ------------------------------------------------------------------

    async def search_opportunities(self, params: OpportunitySearchParams) -> OpportunitySearchResponse:
        """Search contract opportunities posted within a date window."""
        query: dict[str, Any] = {
            "postedFrom": params.posted_from,
            "postedTo": params.posted_to,
            "limit": min(params.limit or 100, OPPORTUNITIES_MAX_LIMIT),
            "offset": params.offset or 0,
        }
        if params.classification_code:
            query["ccode"] = params.classification_code
        if params.keywords:
            query["title"] = params.keywords
        if params.procurement_type:
            query["ptype"] = params.procurement_type

        data = await self._get_json("Opportunities", "/opportunities/v2/search", query)
        return parse_opportunity_page(data)

    async def get_opportunity_details(self, notice_id: str) -> OpportunityDetails | None:
        """
        Fetch one opportunity by notice id, including line items.

        When the description field is itself a link, the full text is
        resolved with a second request. Failure of that request only costs
        the long description.
        """
        data = await self._get_json(
            "Opportunities",
            "/opportunities/v2/search",
            {"noticeid": notice_id, "limit": 1},
        )
        records = data.get("opportunitiesData") if isinstance(data, dict) else None
        if not records or not isinstance(records[0], dict):
            return None

        raw = records[0]
        full_description = ""
        description = raw.get("description")
        if isinstance(description, str) and description.startswith("https://"):
            full_description = await self._fetch_description(description)

        details = parse_opportunity_details(raw, full_description)
        if not details.line_items:
            extraction = extract_line_items(full_description)
            details.line_items = extraction.items
            details.line_item_strategy = extraction.strategy
        return details

    async def _fetch_description(self, url: str) -> str:
        try:
            response = await self._http.get(url, params={"api_key": self.api_key})
            if response.is_success:
                body = response.json()
                if isinstance(body, dict) and isinstance(body.get("description"), str):
                    return body["description"]
            else:
                self.logger.warning("Notice description fetch failed", status=response.status_code)
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Failed to fetch notice description", error=str(e))
        return ""

    # ------------------------------------------------------------------
    # Contract Awards API
    # ------------------------------------------------------------------

    async def search_awards(self, params: AwardSearchParams) -> AwardSearchResponse:
        """Search historical contract awards signed within a date window."""
        query: dict[str, Any] = {
            # Awards API takes a bracketed range: [MM/DD/YYYY,MM/DD/YYYY]
            "signedDate": f"[{params.signed_date_from},{params.signed_date_to}]",
            "limit": params.limit or 25,
            "offset": params.offset or 0,
        }
        if params.product_service_codes:
            # Commas are reserved upstream; multiple codes are joined with "~"
            query["productOrServiceCode"] = "~".join(params.product_service_codes[:AWARDS_MAX_CODES])
        if params.naics_code:
            query["naicsCode"] = params.naics_code

        data = await self._get_json("Awards", "/contract-awards/v1/search", query)
        return parse_award_page(data)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    @staticmethod
    def format_date(value: date) -> str:
        """MM/DD/YYYY, the format both endpoints expect."""
        return value.strftime("%m/%d/%Y")

    @classmethod
    def date_range(cls, days: int, now: datetime | None = None) -> tuple[str, str]:
        """(from, to) covering the last ``days`` days."""
        end = now or datetime.now(timezone.utc)
        return cls.format_date(end - timedelta(days=days)), cls.format_date(end)

    @staticmethod
    def nsn_to_fsc(nsn: str) -> str:
        """
        Federal Supply Class of a National Stock Number.

        NSN format is XXXX-XX-XXX-XXXX; the FSC is the first four digits.
        """
        return re.sub(r"[^0-9A-Za-z]", "", nsn or "")[:4]

    @staticmethod
    def is_configured(settings: Settings | None = None) -> bool:
        """Whether an API key is available."""
        return bool((settings or get_settings()).sam_gov_api_key)


_client: SamGovClient | None = None


def get_sam_client() -> SamGovClient | None:
    """Shared client instance, or None when no API key is configured."""
    global _client

    if _client is None and SamGovClient.is_configured():
        _client = SamGovClient()
    return _client


async def close_sam_client() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("SAM.gov client closed")
