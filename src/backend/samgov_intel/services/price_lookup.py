"""
Historical price intelligence from SAM.gov contract awards.

A lookup resolves the item to a set of Product Service Codes, reads the
local award cache, tops it up from the Contract Awards API when the cache
is thin, and summarizes what was paid. Pricing is advisory: upstream and
cache failures degrade the result instead of failing the request.
"""

import calendar
import re
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from samgov_intel.core.config import Settings, get_settings
from samgov_intel.core.exceptions import AppException
from samgov_intel.core.logging import LoggerMixin
from samgov_intel.db.base import ensure_utc
from samgov_intel.models import AwardCacheEntry
from samgov_intel.sam.client import SamGovClient
from samgov_intel.sam.models import AwardSearchParams, ContractAward
from samgov_intel.sam.parsing import parse_date
from samgov_intel.schemas.pricing import (
    AwardSummary,
    Confidence,
    PriceLookupParams,
    PriceStatistics,
    PricingResult,
    Trend,
)

NO_DATA_MESSAGE = "No historical pricing data found for this item."
TREND_THRESHOLD_PERCENT = 5.0
MIN_TREND_SAMPLES = 4
HIGH_CONFIDENCE_AWARDS = 10
MEDIUM_CONFIDENCE_AWARDS = 5
RECENT_MONTHS = 6
LEADING_KEYWORDS = 10

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _months_before(value: datetime, months: int) -> datetime:
    month_index = value.year * 12 + value.month - 1 - months
    year, month = divmod(month_index, 12)
    day = min(value.day, calendar.monthrange(year, month + 1)[1])
    return value.replace(year=year, month=month + 1, day=day)


def _decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def calculate_trend(prices: Sequence[float]) -> Trend:
    """
    Compare the older half of chronologically ordered prices with the newer half.

    Fewer than four prices is "unknown"; a move of more than 5% either way
    is "up" or "down", anything smaller is "stable".
    """
    if len(prices) < MIN_TREND_SAMPLES:
        return "unknown"
    midpoint = len(prices) // 2
    older = _mean(prices[:midpoint])
    newer = _mean(prices[midpoint:])
    change = (newer - older) / older * 100
    if change > TREND_THRESHOLD_PERCENT:
        return "up"
    if change < -TREND_THRESHOLD_PERCENT:
        return "down"
    return "stable"


def calculate_statistics(awards: Sequence[AwardSummary]) -> PriceStatistics | None:
    """
    Summarize unit prices and total values over ``awards``.

    Only positive values count. Returns None when no award carries either
    a positive unit price or a positive total value.
    """
    priced = [award for award in awards if award.unit_price is not None and award.unit_price > 0]
    unit_prices = sorted(award.unit_price for award in priced)
    totals = sorted(award.total_value for award in awards if award.total_value > 0)

    if not unit_prices and not totals:
        return None

    statistics = PriceStatistics(count=len(awards))
    if unit_prices:
        chronological = sorted(priced, key=lambda award: parse_date(award.award_date) or _OLDEST)
        statistics.min_unit_price = unit_prices[0]
        statistics.max_unit_price = unit_prices[-1]
        statistics.avg_unit_price = _mean(unit_prices)
        # Upper median for even counts
        statistics.median_unit_price = unit_prices[len(unit_prices) // 2]
        statistics.recent_trend = calculate_trend([award.unit_price for award in chronological])
    if totals:
        statistics.min_total_value = totals[0]
        statistics.max_total_value = totals[-1]
        statistics.avg_total_value = _mean(totals)
    return statistics


def determine_confidence(awards: Sequence[AwardSummary], now: datetime | None = None) -> Confidence:
    """Coarse trust label from sample size, priced data and recency."""
    if not awards:
        return "none"

    now = now or datetime.now(timezone.utc)
    has_unit_price = any(award.unit_price is not None and award.unit_price > 0 for award in awards)

    if len(awards) >= HIGH_CONFIDENCE_AWARDS and has_unit_price:
        cutoff = _months_before(now, RECENT_MONTHS)
        if any((parse_date(award.award_date) or _OLDEST) > cutoff for award in awards):
            return "high"

    if len(awards) >= MEDIUM_CONFIDENCE_AWARDS or has_unit_price:
        return "medium"
    return "low"


def _summary_from_cache(entry: AwardCacheEntry) -> AwardSummary:
    award_date = ensure_utc(entry.award_date)
    return AwardSummary(
        contract_number=entry.contract_number,
        award_date=award_date.isoformat() if award_date else "",
        total_value=float(entry.total_value or 0),
        unit_price=float(entry.unit_price) if entry.unit_price is not None else None,
        quantity=entry.quantity,
        awardee_name=entry.awardee_name or "",
        awardee_cage=entry.awardee_cage or "",
        agency=entry.contracting_agency or "",
        description=entry.description or "",
    )


def _summary_from_award(award: ContractAward) -> AwardSummary:
    return AwardSummary(
        contract_number=award.contract_number,
        award_date=award.award_date,
        total_value=award.total_value,
        unit_price=award.unit_price,
        quantity=award.quantity,
        awardee_name=award.awardee_name,
        awardee_cage=award.awardee_cage,
        agency=award.contracting_agency,
        description=award.description,
    )


class PriceLookupService(LoggerMixin):
    """Price lookups backed by the award cache and the Contract Awards API."""

    def __init__(
        self,
        session: AsyncSession,
        client: SamGovClient | None,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.settings = settings or get_settings()

    def derive_search_codes(self, params: PriceLookupParams) -> list[str]:
        """
        Product Service Codes to search.

        An explicit PSC wins. Otherwise the NSN's Federal Supply Class is
        expanded through the related-code map; unmapped classes search alone.
        """
        if params.psc and params.psc.strip():
            return [params.psc.strip()]
        if params.nsn:
            fsc = SamGovClient.nsn_to_fsc(params.nsn)
            if fsc:
                return list(self.settings.pricing_related_codes.get(fsc, [fsc]))
        return []

    def extract_keywords(self, description: str | None) -> list[str]:
        """
        Keywords stored with a cached award for later free-text matching.

        Keeps tokens longer than three characters that contain a domain term
        or first appear among the leading tokens of the description.
        """
        if not description:
            return []

        words = [word for word in re.split(r"\W+", description.lower()) if len(word) > 3]
        first_seen: dict[str, int] = {}
        for index, word in enumerate(words):
            first_seen.setdefault(word, index)

        domain_terms = [term.lower() for term in self.settings.pricing_domain_keywords]
        return [
            word
            for word, index in first_seen.items()
            if index < LEADING_KEYWORDS or any(term in word for term in domain_terms)
        ]

    async def _cached_awards(
        self,
        codes: list[str],
        naics_code: str | None,
        since: datetime,
    ) -> list[AwardCacheEntry]:
        query = select(AwardCacheEntry).where(AwardCacheEntry.award_date >= since)
        if codes:
            query = query.where(AwardCacheEntry.product_service_code.in_(codes))
        if naics_code:
            query = query.where(AwardCacheEntry.naics_code == naics_code)
        query = query.order_by(AwardCacheEntry.award_date.desc()).limit(self.settings.pricing_cache_limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    def _cache_row(self, award: ContractAward) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "contract_number": award.contract_number[:100],
            "product_service_code": award.product_service_code[:10] or None,
            "naics_code": award.naics_code[:10] or None,
            "description_keywords": self.extract_keywords(award.description),
            "award_date": parse_date(award.award_date),
            "total_value": _decimal(award.total_value),
            "action_obligation": _decimal(award.action_obligation),
            "quantity": award.quantity,
            "unit_price": _decimal(award.unit_price),
            "awardee_name": award.awardee_name[:255] or None,
            "awardee_cage": award.awardee_cage[:20] or None,
            "awardee_uei": award.awardee_uei[:20] or None,
            "contracting_agency": award.contracting_agency[:255] or None,
            "description": award.description or None,
            "raw_data": award.raw_data,
        }

    async def _cache_awards(self, awards: Sequence[ContractAward]) -> None:
        """Insert-or-ignore: the first copy of a contract number wins."""
        rows = list({award.contract_number: self._cache_row(award) for award in reversed(awards)}.values())
        if not rows:
            return

        dialect = self.session.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(AwardCacheEntry).values(rows).on_conflict_do_nothing(index_elements=["contract_number"])

        async with self.session.begin_nested():
            await self.session.execute(stmt)
        self.logger.debug("Cached contract awards", count=len(rows))

    async def _fetch_live(
        self,
        codes: list[str],
        params: PriceLookupParams,
        now: datetime,
    ) -> list[ContractAward]:
        signed_from, signed_to = SamGovClient.date_range(params.lookback_days, now)
        response = await self.client.search_awards(
            AwardSearchParams(
                signed_date_from=signed_from,
                signed_date_to=signed_to,
                product_service_codes=codes,
                naics_code=params.naics_code,
                limit=self.settings.pricing_fetch_limit,
            )
        )
        if response.skipped_records:
            self.logger.warning("Skipped malformed award records", count=len(response.skipped_records))
        return response.awards

    async def lookup_pricing(self, params: PriceLookupParams, now: datetime | None = None) -> PricingResult:
        """Look up historical pricing. Never raises for upstream or cache failures."""
        now = now or datetime.now(timezone.utc)
        codes = self.derive_search_codes(params)
        result = PricingResult(search_params=params, search_codes=codes, message=NO_DATA_MESSAGE)

        # Keywords alone do not narrow the cache yet
        if not codes and not params.naics_code:
            self.logger.info("Price lookup has no code to search", keywords=params.keywords)
            return result

        try:
            cached = await self._cached_awards(codes, params.naics_code, now - timedelta(days=params.lookback_days))
        except SQLAlchemyError as e:
            self.logger.error("Award cache read failed", error=str(e))
            cached = []

        if cached:
            result.data_source = "cache"
            result.awards = [_summary_from_cache(entry) for entry in cached]

        if len(cached) < self.settings.pricing_min_cached_awards and self.client is not None:
            try:
                fetched = await self._fetch_live(codes, params, now)
            except (AppException, httpx.HTTPError) as e:
                self.logger.warning("Failed to fetch awards from SAM.gov, using cache only", error=str(e))
            else:
                try:
                    await self._cache_awards(fetched)
                except SQLAlchemyError as e:
                    self.logger.error("Failed to cache fetched awards", error=str(e))
                seen = {award.contract_number for award in result.awards}
                for award in fetched:
                    if award.contract_number not in seen:
                        seen.add(award.contract_number)
                        result.awards.append(_summary_from_award(award))
                if fetched:
                    result.data_source = "api"

        result.statistics = calculate_statistics(result.awards)
        result.confidence = determine_confidence(result.awards, now)
        result.found = bool(result.awards)

        if result.found:
            stats = result.statistics
            if stats is not None and stats.min_unit_price is not None:
                price_range = f"${stats.min_unit_price:.2f} - ${stats.max_unit_price:.2f}"
            else:
                price_range = "varies"
            result.message = f"Found {len(result.awards)} similar awards. Price range: {price_range}"

        self.logger.info(
            "Price lookup completed",
            search_codes=codes,
            awards=len(result.awards),
            confidence=result.confidence,
            data_source=result.data_source,
        )
        return result
