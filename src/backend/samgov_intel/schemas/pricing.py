"""
Schemas for historical price lookups.
"""

from typing import Literal

from pydantic import BaseModel, Field

Confidence = Literal["high", "medium", "low", "none"]
Trend = Literal["up", "down", "stable", "unknown"]
DataSource = Literal["cache", "api", "none"]


class PriceLookupParams(BaseModel):
    """What to price: a stock number, a PSC code, a NAICS code and/or keywords."""

    nsn: str | None = Field(default=None, description="National Stock Number, e.g. 6810-01-234-5678")
    psc: str | None = Field(default=None, description="Product Service Code, e.g. 6810")
    naics_code: str | None = None
    keywords: list[str] | None = None
    lookback_days: int = Field(default=730, ge=1, le=3650)

    @property
    def has_criteria(self) -> bool:
        return bool(self.nsn or self.psc or self.naics_code or self.keywords)


class AwardSummary(BaseModel):
    """One historical award as shown to a pricing user."""

    contract_number: str
    award_date: str
    total_value: float
    unit_price: float | None
    quantity: int | None
    awardee_name: str
    awardee_cage: str
    agency: str
    description: str


class PriceStatistics(BaseModel):
    """
    Aggregates over the matched awards.

    Unit-price fields are None when no award exposes a positive unit
    price; total-value fields are None when no award has a positive total.
    """

    count: int
    min_unit_price: float | None = None
    max_unit_price: float | None = None
    avg_unit_price: float | None = None
    median_unit_price: float | None = None
    min_total_value: float | None = None
    max_total_value: float | None = None
    avg_total_value: float | None = None
    recent_trend: Trend = "unknown"


class PricingResult(BaseModel):
    """Outcome of a price lookup. Always well-formed, even on failure."""

    found: bool = False
    message: str = ""
    awards: list[AwardSummary] = Field(default_factory=list)
    statistics: PriceStatistics | None = None
    confidence: Confidence = "none"
    search_params: PriceLookupParams
    search_codes: list[str] = Field(default_factory=list)
    data_source: DataSource = "none"
