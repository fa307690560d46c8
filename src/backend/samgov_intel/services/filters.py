"""
Admission rules applied to every opportunity the sync pulls in.
"""

from decimal import Decimal
from typing import Protocol, Sequence

from samgov_intel.sam.models import OpportunityRecord


class FilterCriteria(Protocol):
    """The filter fields of a sync configuration (ORM row or schema)."""

    classification_codes: Sequence[str]
    excluded_keywords: Sequence[str]
    set_aside_types: Sequence[str]
    min_value: Decimal | float | None


def matches_filters(candidate: OpportunityRecord, config: FilterCriteria) -> bool:
    """
    Decide whether ``candidate`` is admitted under ``config``.

    Rules run in order and all must pass; an empty criterion passes.
    Set-aside and minimum value only reject candidates that actually carry
    the field, so incomplete upstream data is kept rather than dropped.
    """
    # 1. Classification code
    if config.classification_codes and candidate.classification_code not in config.classification_codes:
        return False

    # 2. Excluded keywords veto regardless of anything else
    if config.excluded_keywords:
        text = f"{candidate.title} {candidate.description}".lower()
        if any(keyword.lower() in text for keyword in config.excluded_keywords if keyword):
            return False

    # 3. Set-aside type
    if (
        config.set_aside_types
        and candidate.set_aside_type
        and candidate.set_aside_type not in config.set_aside_types
    ):
        return False

    # 4. Minimum award value
    if config.min_value is not None and candidate.award is not None:
        if candidate.award.amount < float(config.min_value):
            return False

    return True
