from samgov_intel.sam.line_items import (
    DEFAULT_STRATEGIES,
    LineItemStrategy,
    extract_line_items,
)
from samgov_intel.sam.models import LineItem


def test_nsn_with_quantity_is_preferred():
    text = "Item 1\nNSN: 6810-00-286-5435, ACETONE, TECHNICAL\nQTY: 100 EA\n0001 - Ignored, 5 DR"

    extraction = extract_line_items(text)

    assert extraction.strategy == "nsn_quantity"
    assert extraction.items == [
        LineItem(line_number="1", quantity=100, unit="EA", nsn="6810-00-286-5435")
    ]


def test_numbered_lines():
    text = "0001 - Acetone, 50 GAL\n0002 - Methanol, 10 dr\n"

    extraction = extract_line_items(text)

    assert extraction.strategy == "numbered_line"
    assert [(i.line_number, i.description, i.quantity, i.unit) for i in extraction.items] == [
        ("0001", "Acetone", 50, "GAL"),
        ("0002", "Methanol", 10, "DR"),
    ]


def test_quantity_and_unit_fallback():
    extraction = extract_line_items("GREASE, AIRCRAFT 5GL")

    assert extraction.strategy == "quantity_unit"
    assert len(extraction.items) == 1
    item = extraction.items[0]
    assert item.quantity == 5
    assert item.unit == "GL"
    assert item.description == "GREASE, AIRCRAFT 5GL"


def test_no_match_yields_no_strategy():
    extraction = extract_line_items("Sources sought for laboratory services")

    assert extraction.strategy is None
    assert extraction.items == []
    assert not extraction.found


def test_empty_text():
    assert extract_line_items("").strategy is None


def test_custom_strategy_order():
    def always_one(text: str) -> list[LineItem]:
        return [LineItem(line_number="X", description=text)]

    strategies = (LineItemStrategy("catch_all", always_one), *DEFAULT_STRATEGIES)

    extraction = extract_line_items("0001 - Acetone, 50 GAL", strategies)

    assert extraction.strategy == "catch_all"
    assert extraction.items[0].line_number == "X"
