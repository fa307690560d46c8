"""
Data models for normalized SAM.gov API records.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class OpportunitySearchParams:
    """Query for the Get Opportunities API. Dates are MM/DD/YYYY."""
    posted_from: str
    posted_to: str
    classification_code: str | None = None  # upstream accepts one code per call
    keywords: str | None = None             # matched against the title
    procurement_type: str | None = None     # o=solicitation, p=presolicitation, ...
    limit: int = 100
    offset: int = 0


@dataclass
class AwardSearchParams:
    """Query for the Contract Awards API. Dates are MM/DD/YYYY."""
    signed_date_from: str
    signed_date_to: str
    product_service_codes: list[str] = field(default_factory=list)  # max 100
    naics_code: str | None = None
    limit: int = 25
    offset: int = 0


@dataclass
class Attachment:
    name: str
    url: str
    type: str = "application/octet-stream"
    size: int | None = None


@dataclass
class PointOfContact:
    name: str = ""
    email: str = ""
    phone: str = ""
    type: str = "primary"


@dataclass
class OpportunityAward:
    amount: float
    awardee: str
    award_date: str


@dataclass
class OpportunityRecord:
    """An opportunity as returned by the search endpoint."""
    solicitation_number: str
    title: str = ""
    notice_id: str = ""
    posted_date: str = ""
    response_deadline: str = ""
    classification_code: str = ""
    naics_code: str = ""
    set_aside_type: str | None = None
    agency: str = ""
    office: str = ""
    description: str = ""
    ui_link: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    points_of_contact: list[PointOfContact] = field(default_factory=list)
    award: OpportunityAward | None = None
    raw_data: dict[str, Any] = field(default_factory=dict)

    @property
    def primary_contact(self) -> PointOfContact | None:
        return self.points_of_contact[0] if self.points_of_contact else None


@dataclass
class LineItem:
    line_number: str
    description: str = ""
    quantity: int | None = None
    unit: str = ""
    nsn: str = ""
    part_number: str = ""


@dataclass
class OpportunityDetails:
    """Full opportunity record including resolved description and line items."""
    notice_id: str
    solicitation_number: str
    title: str
    description: str
    full_description: str
    posted_date: str
    response_deadline: str
    archive_date: str
    classification_code: str
    naics_code: str
    set_aside_type: str | None
    contract_type: str
    agency: str
    office: str
    location: str | None
    contacts: list[PointOfContact] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    line_items: list[LineItem] = field(default_factory=list)
    line_item_strategy: str | None = None  # "api" or the extractor strategy that matched
    award: OpportunityAward | None = None
    ui_link: str = ""
    raw_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ContractAward:
    """A historical contract award."""
    contract_number: str
    award_date: str = ""
    total_value: float = 0.0
    action_obligation: float = 0.0
    product_service_code: str = ""
    naics_code: str = ""
    awardee_uei: str = ""
    awardee_name: str = ""
    awardee_cage: str = ""
    contracting_agency: str = ""
    description: str = ""
    quantity: int | None = None
    unit_price: float | None = None
    raw_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ParseFailure:
    """A record the normalization layer had to skip."""
    index: int
    reason: str
    record_key: str | None = None


@dataclass
class OpportunitySearchResponse:
    total_records: int
    opportunities: list[OpportunityRecord] = field(default_factory=list)
    limit: int = 100
    offset: int = 0
    skipped_records: list[ParseFailure] = field(default_factory=list)


@dataclass
class AwardSearchResponse:
    total_records: int
    awards: list[ContractAward] = field(default_factory=list)
    limit: int = 25
    offset: int = 0
    skipped_records: list[ParseFailure] = field(default_factory=list)
