"""
Best-effort line-item extraction from free-text solicitation descriptions.

DLA and other agencies often embed item details in the description instead
of the structured lineItems field. Each strategy below is a named heuristic;
they run in order and the first one that yields items wins. None of them is
a guaranteed parser. Add a heuristic by appending a LineItemStrategy.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from samgov_intel.sam.models import LineItem

UNIT_TOKENS = (
    "GALLON", "GAL", "GL", "EACH", "EA", "LB", "CASE", "CS", "BOX", "BX",
    "DRUM", "DR", "PT", "QT", "OZ", "KG", "ML", "L",
)

NSN_QTY_PATTERN = re.compile(
    r"NSN[:\s]*(\d{4}-\d{2}-\d{3}-\d{4}).*?(?:QTY|Quantity)[:\s]*(\d+)[ \t]*([A-Za-z]+)?",
    re.IGNORECASE | re.DOTALL,
)
NUMBERED_LINE_PATTERN = re.compile(
    r"^[ \t]*(\d{4})[ \t]*[-–][ \t]*([^,\n]+),?[ \t]*(\d+)[ \t]*([A-Za-z]+)?",
    re.MULTILINE,
)
QUANTITY_UNIT_PATTERN = re.compile(
    r"(\d+)\s*(" + "|".join(UNIT_TOKENS) + r")\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class LineItemStrategy:
    name: str
    extract: Callable[[str], list[LineItem]]


@dataclass
class LineItemExtraction:
    """Outcome of a best-effort extraction; ``strategy`` is None when nothing matched."""
    strategy: str | None = None
    items: list[LineItem] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.items)


def _nsn_quantity(text: str) -> list[LineItem]:
    # "NSN: 6810-00-286-5435 ... QTY: 100 EA"
    return [
        LineItem(
            line_number=str(index),
            quantity=int(match.group(2)),
            unit=(match.group(3) or "EA").upper(),
            nsn=match.group(1),
        )
        for index, match in enumerate(NSN_QTY_PATTERN.finditer(text), start=1)
    ]


def _numbered_line(text: str) -> list[LineItem]:
    # "0001 - Chemical compound, 50 GAL"
    return [
        LineItem(
            line_number=match.group(1),
            description=match.group(2).strip(),
            quantity=int(match.group(3)),
            unit=(match.group(4) or "EA").upper(),
        )
        for match in NUMBERED_LINE_PATTERN.finditer(text)
    ]


def _quantity_unit(text: str) -> list[LineItem]:
    # "GREASE, 5GL" / "100 EACH"
    match = QUANTITY_UNIT_PATTERN.search(text)
    if not match:
        return []
    return [
        LineItem(
            line_number="1",
            description=text[:100],
            quantity=int(match.group(1)),
            unit=match.group(2).upper(),
        )
    ]


DEFAULT_STRATEGIES: tuple[LineItemStrategy, ...] = (
    LineItemStrategy("nsn_quantity", _nsn_quantity),
    LineItemStrategy("numbered_line", _numbered_line),
    LineItemStrategy("quantity_unit", _quantity_unit),
)


def extract_line_items(
    text: str,
    strategies: Sequence[LineItemStrategy] = DEFAULT_STRATEGIES,
) -> LineItemExtraction:
    """Run ``strategies`` in priority order and return the first non-empty result."""
    if not text:
        return LineItemExtraction()
    for strategy in strategies:
        items = strategy.extract(text)
        if items:
            return LineItemExtraction(strategy=strategy.name, items=items)
    return LineItemExtraction()
