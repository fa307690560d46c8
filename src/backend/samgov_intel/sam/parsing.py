"""
Normalization of untyped SAM.gov JSON into typed records.

The upstream schema is not contractually stable: every field read here
tolerates absence or the wrong type and falls back to "", None or 0. A
record is rejected (RecordParseError) only when it is not an object or has
no natural key, and page parsers skip such records instead of failing the
whole page.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar
from urllib.parse import urlparse

from samgov_intel.core.exceptions import RecordParseError
from samgov_intel.core.logging import get_logger
from samgov_intel.sam.models import (
    Attachment,
    AwardSearchResponse,
    ContractAward,
    LineItem,
    OpportunityAward,
    OpportunityDetails,
    OpportunityRecord,
    OpportunitySearchResponse,
    ParseFailure,
    PointOfContact,
)

logger = get_logger(__name__)

T = TypeVar("T")


def _str(value: Any) -> str:
    if value is None or value is False:
        return ""
    return str(value).strip()


def _first(source: dict[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys``."""
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _num(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt_num(value: Any) -> float | None:
    number = _num(value, default=0.0)
    return number if number else None


def _opt_int(value: Any) -> int | None:
    number = _opt_num(value)
    return int(number) if number is not None else None


DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y-%m-%d %H:%M:%S",
)


def parse_date(value: str | None) -> datetime | None:
    """Parse an upstream date string to an aware UTC datetime; None if unparseable."""
    if not value:
        return None
    text = value.strip()

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_attachment(raw: Any) -> Attachment | None:
    # resourceLinks is a list of bare URLs in v2, of objects in older payloads
    if isinstance(raw, str) and raw:
        name = urlparse(raw).path.rstrip("/").rsplit("/", 1)[-1]
        return Attachment(name=name, url=raw)
    if not isinstance(raw, dict):
        return None
    return Attachment(
        name=_str(_first(raw, "title", "name")),
        url=_str(_first(raw, "href", "url")),
        type=_str(raw.get("mimetype")) or "application/octet-stream",
        size=_opt_int(raw.get("size")),
    )


def parse_contact(raw: Any) -> PointOfContact | None:
    if not isinstance(raw, dict):
        return None
    return PointOfContact(
        name=_str(raw.get("fullName")),
        email=_str(raw.get("email")),
        phone=_str(raw.get("phone")),
        type=_str(raw.get("type")) or "primary",
    )


def parse_opportunity_award(raw: Any) -> OpportunityAward | None:
    if not isinstance(raw, dict):
        return None
    awardee = raw.get("awardee")
    awardee_name = _str(awardee.get("name")) if isinstance(awardee, dict) else _str(awardee)
    return OpportunityAward(
        amount=_num(raw.get("amount")),
        awardee=awardee_name,
        award_date=_str(raw.get("date")),
    )


def _agency_and_office(raw: dict[str, Any]) -> tuple[str, str]:
    agency = _str(raw.get("department"))
    office = _str(_first(raw, "subtier", "office"))
    if agency and office:
        return agency, office
    # Newer payloads only carry "DEPT.SUBTIER.OFFICE"
    path = [part.strip() for part in _str(raw.get("fullParentPathName")).split(".") if part.strip()]
    return agency or (path[0] if path else ""), office or (path[1] if len(path) > 1 else "")


def parse_opportunity(raw: Any) -> OpportunityRecord:
    """Normalize one opportunity from the search endpoint."""
    if not isinstance(raw, dict):
        raise RecordParseError("opportunity", "expected a JSON object")

    solicitation_number = _str(raw.get("solicitationNumber"))
    if not solicitation_number:
        raise RecordParseError(
            "opportunity",
            "missing solicitation number",
            record_key=_str(raw.get("noticeId")) or None,
        )

    agency, office = _agency_and_office(raw)
    attachments = [a for a in map(parse_attachment, _list(raw.get("resourceLinks"))) if a]
    contacts = [c for c in map(parse_contact, _list(raw.get("pointOfContact"))) if c]
    set_aside = _str(raw.get("typeOfSetAside"))

    return OpportunityRecord(
        solicitation_number=solicitation_number,
        notice_id=_str(raw.get("noticeId")),
        title=_str(raw.get("title")),
        posted_date=_str(raw.get("postedDate")),
        response_deadline=_str(_first(raw, "responseDeadLine", "archiveDate")),
        classification_code=_str(raw.get("classificationCode")),
        naics_code=_str(raw.get("naicsCode")),
        set_aside_type=set_aside or None,
        agency=agency,
        office=office,
        description=_str(raw.get("description")),
        ui_link=_str(raw.get("uiLink")),
        attachments=attachments,
        points_of_contact=contacts,
        award=parse_opportunity_award(raw.get("award")),
        raw_data=raw,
    )


def parse_award(raw: Any) -> ContractAward:
    """
    Normalize one contract award.

    Unit price and quantity live in different places depending on the
    contract type and are frequently absent.
    """
    if not isinstance(raw, dict):
        raise RecordParseError("award", "expected a JSON object")

    contract_number = _str(_first(raw, "piid", "contractNumber"))
    if not contract_number:
        raise RecordParseError("award", "missing contract number")

    details = _dict(raw.get("awardDetails"))
    dollars = _dict(details.get("dollars"))
    awardee = _dict(raw.get("awardee"))
    product = _dict(raw.get("productOrService"))

    unit_price = None
    quantity = None
    for source in (raw, details, dollars, product):
        if unit_price is None:
            unit_price = _opt_num(source.get("unitPrice"))
        if quantity is None:
            quantity = _opt_int(source.get("quantity"))

    return ContractAward(
        contract_number=contract_number,
        award_date=_str(_first(details, "dateSigned") or raw.get("dateSigned")),
        total_value=_num(_first(dollars, "baseAndAllOptionsValue", "totalActionObligation")),
        action_obligation=_num(dollars.get("actionObligation")),
        product_service_code=_str(_first(product, "code", "productOrServiceCode")),
        naics_code=_str(raw.get("naicsCode")),
        awardee_uei=_str(_first(awardee, "uei", "ueiSAM")),
        awardee_name=_str(_first(awardee, "name", "vendorName")),
        awardee_cage=_str(awardee.get("cageCode")),
        contracting_agency=_str(_first(raw, "contractingAgency", "fundingAgency")),
        description=_str(product.get("description") or raw.get("descriptionOfContractRequirement")),
        quantity=quantity,
        unit_price=unit_price,
        raw_data=raw,
    )


def _parse_records(
    items: list[Any],
    parser: Callable[[Any], T],
    record_type: str,
) -> tuple[list[T], list[ParseFailure]]:
    records: list[T] = []
    failures: list[ParseFailure] = []
    for index, item in enumerate(items):
        try:
            records.append(parser(item))
        except RecordParseError as e:
            failure = ParseFailure(index=index, reason=e.message, record_key=e.details.get("record_key"))
            failures.append(failure)
            logger.warning(
                "Skipping malformed SAM.gov record",
                record_type=record_type,
                index=index,
                reason=e.message,
            )
    return records, failures


def parse_opportunity_page(data: Any) -> OpportunitySearchResponse:
    """Normalize a Get Opportunities response body."""
    body = _dict(data)
    opportunities, failures = _parse_records(
        _list(body.get("opportunitiesData")), parse_opportunity, "opportunity"
    )
    return OpportunitySearchResponse(
        total_records=int(_num(body.get("totalRecords"), default=len(opportunities))),
        opportunities=opportunities,
        limit=int(_num(body.get("limit"), default=100)),
        offset=int(_num(body.get("offset"), default=0)),
        skipped_records=failures,
    )


def parse_line_item(raw: Any) -> LineItem | None:
    if not isinstance(raw, dict):
        return None
    return LineItem(
        line_number=_str(_first(raw, "lineNumber", "itemNumber")),
        description=_str(_first(raw, "description", "title")),
        quantity=_opt_int(raw.get("quantity")),
        unit=_str(_first(raw, "unitOfMeasure", "unit")),
        nsn=_str(_first(raw, "nsn", "nationalStockNumber")),
        part_number=_str(_first(raw, "partNumber", "manufacturerPartNumber")),
    )


def _location(raw: Any) -> str | None:
    if not isinstance(raw, dict):
        return None
    # v2 nests {"code", "name"} objects; older payloads carry plain strings
    city, state = raw.get("city"), raw.get("state")
    city_name = _str(city.get("name")) if isinstance(city, dict) else _str(city)
    state_name = _str(_first(state, "code", "name")) if isinstance(state, dict) else _str(state)
    return ", ".join(part for part in (city_name, state_name) if part) or None


def parse_opportunity_details(raw: dict[str, Any], full_description: str = "") -> OpportunityDetails:
    """
    Normalize a single-notice lookup.

    Unlike the search parser this never rejects the record: the caller asked
    for this notice by id. Line items are taken from ``lineItems`` when the
    API provides them; the caller falls back to text extraction otherwise.
    """
    agency, office = _agency_and_office(raw)
    line_items = [item for item in map(parse_line_item, _list(raw.get("lineItems"))) if item]
    set_aside = _str(raw.get("typeOfSetAside"))

    return OpportunityDetails(
        notice_id=_str(raw.get("noticeId")),
        solicitation_number=_str(raw.get("solicitationNumber")),
        title=_str(raw.get("title")),
        description=full_description or _str(raw.get("description")),
        full_description=full_description,
        posted_date=_str(raw.get("postedDate")),
        response_deadline=_str(_first(raw, "responseDeadLine", "archiveDate")),
        archive_date=_str(raw.get("archiveDate")),
        classification_code=_str(_first(raw, "classificationCode", "productOrServiceCode")),
        naics_code=_str(raw.get("naicsCode")),
        set_aside_type=set_aside or None,
        contract_type=_str(raw.get("typeOfContract")),
        agency=agency,
        office=office,
        location=_location(raw.get("placeOfPerformance")),
        contacts=[c for c in map(parse_contact, _list(raw.get("pointOfContact"))) if c],
        attachments=[a for a in map(parse_attachment, _list(raw.get("resourceLinks"))) if a],
        line_items=line_items,
        line_item_strategy="api" if line_items else None,
        award=parse_opportunity_award(raw.get("award")),
        ui_link=_str(raw.get("uiLink")),
        raw_data=raw,
    )


def parse_award_page(data: Any) -> AwardSearchResponse:
    """Normalize a Contract Awards response body."""
    body = _dict(data)
    awards, failures = _parse_records(_list(body.get("data")), parse_award, "award")
    return AwardSearchResponse(
        total_records=int(_num(body.get("totalRecords"), default=len(awards))),
        awards=awards,
        limit=int(_num(body.get("limit"), default=25)),
        offset=int(_num(body.get("offset"), default=0)),
        skipped_records=failures,
    )
