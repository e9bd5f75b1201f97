"""
portfolio/search.py

Client-side search and summary statistics over the property list.

Both run on every page render against the full in-memory list. Valuations
are accumulated as Decimal and only formatted for display at the end.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext
from typing import Iterable, List, Optional

import pandas as pd

from portfolio.models import FIELD_LABELS, PropertyRecord, number_text, parse_decimal_prefix

CURRENCY_SYMBOL = "£"

# Characters stripped before a valuation is parsed
_CURRENCY_NOISE = str.maketrans("", "", "£,")

_ZERO = Decimal(0)

# Most fraction digits shown in the total (matches en-GB number formatting)
_TOTAL_QUANTUM = Decimal("0.001")

# Valuations are held exactly up to this many digits either side of the point.
# Larger magnitudes count as 0; finer fractions are rounded to the limit.
_MAX_INTEGER_DIGITS = 100
_MAX_FRACTION_DIGITS = 100
_FRACTION_QUANTUM = Decimal(1).scaleb(-_MAX_FRACTION_DIGITS)

# Enough precision to add a billion bounded valuations without rounding
_VALUATION_CONTEXT = Context(
    prec=_MAX_INTEGER_DIGITS + _MAX_FRACTION_DIGITS + 20,
    rounding=ROUND_HALF_UP,
)

TABLE_COLUMNS = [
    "id",
    "address",
    "type",
    "bedrooms",
    "bathrooms",
    "valuation",
    "estate_agent",
    "selling_agent",
    "occupied",
]


@dataclass(frozen=True)
class PortfolioSummary:
    count: int
    total_valuation: Decimal


# --------------------------------------------------------------------
# Search
# --------------------------------------------------------------------

def searchable_values(record: PropertyRecord) -> List[str]:
    """Text forms of every field the search box looks at.

    Optional agent fields are skipped when absent.
    """
    values = [
        record.address,
        record.type,
        number_text(record.bedrooms),
        number_text(record.bathrooms),
        record.occupied,
    ]
    for optional in (record.estate_agent, record.selling_agent):
        if optional is not None:
            values.append(optional)
    return values


def matches(record: PropertyRecord, query: str) -> bool:
    """Case-insensitive substring match of ``query`` against any searchable field."""
    needle = query.casefold()
    if not needle:
        return True
    return any(needle in value.casefold() for value in searchable_values(record))


def filter_properties(records: Iterable[PropertyRecord], query: str) -> List[PropertyRecord]:
    """Records matching ``query``, always sorted by id ascending."""
    query = query or ""
    return sorted((r for r in records if matches(r, query)), key=lambda r: r.id)


# --------------------------------------------------------------------
# Aggregation
# --------------------------------------------------------------------

def parse_currency(value: Optional[str]) -> Decimal:
    """Parse a free-form valuation into a Decimal.

    Every "£" and "," is stripped, then the leading number is read
    ("£1,234.50" -> 1234.50, "£100k" -> 100). Missing or unparsable input
    is 0.
    """
    if not value:
        return _ZERO
    parsed = parse_decimal_prefix(str(value).translate(_CURRENCY_NOISE))
    if parsed is None or not parsed.is_finite():
        return _ZERO
    if parsed.adjusted() >= _MAX_INTEGER_DIGITS:
        return _ZERO
    if parsed.as_tuple().exponent < -_MAX_FRACTION_DIGITS:
        with localcontext(_VALUATION_CONTEXT):
            parsed = parsed.quantize(_FRACTION_QUANTUM)
    return parsed


def aggregate(records: Iterable[PropertyRecord]) -> PortfolioSummary:
    """Count and total valuation of the full, unfiltered list."""
    count = 0
    total = _ZERO
    with localcontext(_VALUATION_CONTEXT):
        for record in records:
            count += 1
            total += parse_currency(record.valuation)
    return PortfolioSummary(count=count, total_valuation=total)


# --------------------------------------------------------------------
# Display formatting
# --------------------------------------------------------------------

def format_total(total: Decimal) -> str:
    """£-prefixed, thousands-grouped total with at most three fraction digits."""
    try:
        with localcontext(_VALUATION_CONTEXT):
            rounded = total.quantize(_TOTAL_QUANTUM)
    except InvalidOperation:
        return f"{CURRENCY_SYMBOL}{total}"
    text = f"{rounded:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return f"{CURRENCY_SYMBOL}{text}"


def display_valuation(valuation: Optional[str]) -> str:
    """Table cell text for a valuation: £-prefixed unless it already is."""
    if not valuation:
        return ""
    if valuation.startswith(CURRENCY_SYMBOL):
        return valuation
    return f"{CURRENCY_SYMBOL}{valuation}"


def records_to_frame(records: Iterable[PropertyRecord]) -> pd.DataFrame:
    """Visible rows as a display DataFrame (also used for CSV export)."""
    rows = []
    for record in records:
        rows.append({
            "id": record.id,
            "address": record.address,
            "type": record.type,
            "bedrooms": number_text(record.bedrooms),
            "bathrooms": number_text(record.bathrooms),
            "valuation": display_valuation(record.valuation),
            "estate_agent": record.estate_agent or "",
            "selling_agent": record.selling_agent or "",
            "occupied": record.occupied,
        })
    df = pd.DataFrame(rows, columns=TABLE_COLUMNS)
    return df.rename(columns=FIELD_LABELS)
