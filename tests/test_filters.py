from decimal import Decimal

from samgov_intel.sam.models import OpportunityAward, OpportunityRecord
from samgov_intel.schemas.sync_config import SyncConfigResponse
from samgov_intel.services.filters import matches_filters


def make_record(**overrides) -> OpportunityRecord:
    values = {
        "solicitation_number": "SPE4A7-26-Q-0001",
        "title": "Acetone, technical grade",
        "description": "Supply of acetone",
        "classification_code": "6810",
        "set_aside_type": None,
        "award": None,
    }
    values.update(overrides)
    return OpportunityRecord(**values)


def test_empty_config_admits_everything():
    assert matches_filters(make_record(), SyncConfigResponse())


def test_classification_code_must_be_watched():
    config = SyncConfigResponse(classification_codes=["6810", "6820"])

    assert matches_filters(make_record(classification_code="6820"), config)
    assert not matches_filters(make_record(classification_code="7510"), config)


def test_excluded_keyword_vetoes_case_insensitively():
    config = SyncConfigResponse(classification_codes=["6810"], excluded_keywords=["ACETONE"])

    assert not matches_filters(make_record(), config)


def test_excluded_keyword_matches_description():
    config = SyncConfigResponse(excluded_keywords=["brand name only"])
    record = make_record(title="Methanol", description="Brand Name Only - no substitutes")

    assert not matches_filters(record, config)


def test_excluded_keyword_veto_wins_over_matching_criteria():
    config = SyncConfigResponse(
        classification_codes=["6810"],
        set_aside_types=["SBA"],
        excluded_keywords=["technical"],
    )

    assert not matches_filters(make_record(set_aside_type="SBA"), config)


def test_set_aside_only_rejects_candidates_that_have_one():
    config = SyncConfigResponse(set_aside_types=["SBA", "8A"])

    assert matches_filters(make_record(set_aside_type=None), config)
    assert matches_filters(make_record(set_aside_type="8A"), config)
    assert not matches_filters(make_record(set_aside_type="WOSB"), config)


def test_min_value_only_applies_to_awarded_candidates():
    config = SyncConfigResponse(min_value=Decimal("10000"))
    below = OpportunityAward(amount=9999.99, awardee="Chem Supply Co", award_date="2026-01-10")
    at_threshold = OpportunityAward(amount=10000, awardee="Chem Supply Co", award_date="2026-01-10")

    assert matches_filters(make_record(award=None), config)
    assert matches_filters(make_record(award=at_threshold), config)
    assert not matches_filters(make_record(award=below), config)
