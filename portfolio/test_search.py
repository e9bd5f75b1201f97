# portfolio/test_search.py
# Unit tests for client-side search and valuation totals

from decimal import Decimal

import pytest

from portfolio.models import PropertyRecord
from portfolio.search import (
    aggregate,
    display_valuation,
    filter_properties,
    format_total,
    matches,
    parse_currency,
    records_to_frame,
)


def make(id, **fields):
    base = {"address": "", "type": "House", "bedrooms": 1, "bathrooms": 1, "occupied": "No"}
    base.update(fields)
    return PropertyRecord(id=id, **base)


# --------------------------------------------------------------------
# parse_currency
# --------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("£1,234.50", Decimal("1234.50")),
        ("", Decimal(0)),
        (None, Decimal(0)),
        ("1,234", Decimal(1234)),
        ("£100k", Decimal(100)),
        ("TBC", Decimal(0)),
        ("£", Decimal(0)),
        ("  £2,000,000", Decimal(2000000)),
    ],
)
def test_parse_currency(raw, expected):
    assert parse_currency(raw) == expected


# --------------------------------------------------------------------
# aggregate
# --------------------------------------------------------------------

def test_aggregate_total_and_count():
    records = [make(1, valuation="£100,000"), make(2, valuation="£250,500.50")]
    summary = aggregate(records)
    assert summary.count == 2
    assert summary.total_valuation == Decimal("350500.50")


def test_aggregate_ignores_missing_and_unparsable(sample_records):
    summary = aggregate(sample_records + [make(9, valuation=None), make(10, valuation="n/a")])
    assert summary.count == 5
    assert summary.total_valuation == Decimal("350500.50")


def test_aggregate_is_exact_over_many_records():
    records = [make(i, valuation="£0.10") for i in range(1, 1001)]
    assert aggregate(records).total_valuation == Decimal("100.00")


def test_count_ignores_search(sample_records):
    """Count is always the full list, whatever the search shows."""
    visible = filter_properties(sample_records, "oak")
    assert len(visible) == 1
    assert aggregate(sample_records).count == 3


@pytest.mark.parametrize(
    "valuation, expected_total, expected_text",
    [
        ("1e999999999", Decimal(0), "£0"),
        ("£1e30", Decimal("1e30"), "£1,000,000,000,000,000,000,000,000,000,000"),
        (
            "£10,000,000,000,000,000,000,000,000,001",
            Decimal("10000000000000000000000000001"),
            "£10,000,000,000,000,000,000,000,000,001",
        ),
        ("1e-500", Decimal(0), "£0"),
    ],
)
def test_extreme_valuations_never_raise(valuation, expected_total, expected_text):
    summary = aggregate([make(1, valuation=valuation)])
    assert summary.total_valuation == expected_total
    assert format_total(summary.total_valuation) == expected_text


def test_long_valuations_sum_without_rounding():
    records = [
        make(1, valuation="£10,000,000,000,000,000,000,000,000,001"),
        make(2, valuation="£0.001"),
    ]
    total = aggregate(records).total_valuation
    assert total == Decimal("10000000000000000000000000001.001")
    assert format_total(total) == "£10,000,000,000,000,000,000,000,000,001.001"


def test_format_total_beyond_display_precision():
    assert format_total(Decimal("1e300")) == "£1E+300"


def test_aggregate_empty():
    summary = aggregate([])
    assert summary.count == 0
    assert summary.total_valuation == 0


# --------------------------------------------------------------------
# filter_properties
# --------------------------------------------------------------------

def test_filter_is_case_insensitive():
    records = [make(1, address="Oak Street")]
    assert filter_properties(records, "oak") == records
    assert filter_properties(records, "OAK") == records


def test_empty_query_returns_everything_sorted(sample_records):
    result = filter_properties(sample_records, "")
    assert [r.id for r in result] == [1, 2, 3]


def test_result_sorted_by_id_regardless_of_input_order():
    records = [make(5, address="A road"), make(2, address="A lane"), make(9, address="A way")]
    assert [r.id for r in filter_properties(records, "a")] == [2, 5, 9]


def test_filter_matches_numbers_as_text(sample_records):
    # bathrooms 2.5 on id 2
    assert [r.id for r in filter_properties(sample_records, "2.5")] == [2]
    # bedrooms on id 2, address "Flat 4" on id 1
    assert [r.id for r in filter_properties(sample_records, "4")] == [1, 2]


def test_integral_bathrooms_render_without_decimal():
    record = make(1, bathrooms=2.0)
    assert matches(record, "2")
    assert not matches(record, "2.0")


def test_filter_matches_type_and_occupied(sample_records):
    assert [r.id for r in filter_properties(sample_records, "flat")] == [1]
    assert [r.id for r in filter_properties(sample_records, "yes")] == [3]


def test_filter_matches_present_agents_only(sample_records):
    assert [r.id for r in filter_properties(sample_records, "foxtons")] == [3]
    assert [r.id for r in filter_properties(sample_records, "savills")] == [1]


def test_absent_agents_never_match_or_raise():
    record = make(1, address="X", estate_agent=None, selling_agent=None)
    assert not matches(record, "none")
    assert filter_properties([record], "zzz") == []


def test_missing_numbers_do_not_raise():
    record = make(1, address="Plot 9", bedrooms=None, bathrooms=None)
    assert matches(record, "plot")
    assert not matches(record, "0")


def test_filter_result_is_subsequence_satisfying_predicate(sample_records):
    for query in ["", "o", "house", "1", "lane", "no", "zzz"]:
        result = filter_properties(sample_records, query)
        assert all(matches(r, query) for r in result)
        assert all(r in sample_records for r in result)
        assert [r.id for r in result] == sorted(r.id for r in result)
        excluded = [r for r in sample_records if r not in result]
        assert not any(matches(r, query) for r in excluded)


# --------------------------------------------------------------------
# Formatting
# --------------------------------------------------------------------

@pytest.mark.parametrize(
    "total, expected",
    [
        (Decimal("350500.50"), "£350,500.5"),
        (Decimal("0"), "£0"),
        (Decimal("1234567"), "£1,234,567"),
        (Decimal("999.1234"), "£999.123"),
    ],
)
def test_format_total(total, expected):
    assert format_total(total) == expected


def test_display_valuation():
    assert display_valuation("£100,000") == "£100,000"
    assert display_valuation("100,000") == "£100,000"
    assert display_valuation("") == ""
    assert display_valuation(None) == ""


def test_records_to_frame_uses_display_columns(sample_records):
    frame = records_to_frame(filter_properties(sample_records, ""))
    assert list(frame.columns) == [
        "ID", "Address", "Type", "Bedrooms", "Bathrooms",
        "Last Valuation", "Estate Agent", "Selling Agent", "Occupied",
    ]
    assert frame["ID"].tolist() == [1, 2, 3]
    assert frame["Bathrooms"].tolist() == ["1", "2.5", "1.5"]
    assert frame.loc[0, "Estate Agent"] == ""


def test_records_to_frame_empty():
    frame = records_to_frame([])
    assert frame.empty
    assert "Address" in frame.columns
