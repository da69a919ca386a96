from datetime import date, datetime
from functools import cmp_to_key

import pytest

from dhis2_insights.analytics.errors import InvalidSelectionError
from dhis2_insights.analytics.periods import (
    PeriodToken,
    compare_concrete_periods,
    describe_period,
    format_period_id,
    period_date_range,
    period_label,
    period_sort_key,
    resolve_period,
)


def _month_index(period_id: str) -> int:
    return int(period_id[:4]) * 12 + int(period_id[4:])


@pytest.mark.parametrize(
    "token,now,expected",
    [
        (PeriodToken.THIS_MONTH, date(2025, 1, 15), "202501"),
        (PeriodToken.LAST_MONTH, date(2025, 1, 15), "202412"),
        (PeriodToken.LAST_MONTH, date(2025, 7, 1), "202506"),
        (PeriodToken.THIS_QUARTER, date(2025, 1, 15), "2025Q1"),
        (PeriodToken.THIS_QUARTER, date(2025, 12, 31), "2025Q4"),
        (PeriodToken.LAST_QUARTER, date(2025, 2, 28), "2024Q4"),
        (PeriodToken.LAST_QUARTER, date(2025, 5, 2), "2025Q1"),
        (PeriodToken.THIS_YEAR, date(2025, 3, 1), "2025"),
        (PeriodToken.LAST_YEAR, date(2025, 3, 1), "2024"),
    ],
)
def test_single_period_tokens(token, now, expected):
    assert resolve_period(token, now=now) == expected


def test_string_tokens_are_accepted():
    assert resolve_period("last_month", now=date(2025, 1, 2)) == "202412"


def test_datetime_now_is_accepted():
    assert resolve_period("THIS_MONTH", now=datetime(2024, 11, 30, 23, 59)) == "202411"


def test_last_12_months_is_oldest_first_and_ends_this_month():
    periods = resolve_period(PeriodToken.LAST_12_MONTHS, now=date(2025, 3, 10))
    assert periods[0] == "202404"
    assert periods[-1] == "202503"
    assert len(periods) == 12


@pytest.mark.parametrize("month", range(1, 13))
def test_last_12_months_consecutive_for_every_month(month):
    now = date(2024, month, 1)
    periods = resolve_period(PeriodToken.LAST_12_MONTHS, now=now)
    assert len(set(periods)) == 12
    assert periods[-1] == resolve_period(PeriodToken.THIS_MONTH, now=now)
    steps = [_month_index(b) - _month_index(a) for a, b in zip(periods, periods[1:])]
    assert steps == [1] * 11


def test_unknown_token_is_fatal():
    with pytest.raises(InvalidSelectionError) as excinfo:
        resolve_period("LAST_5_FORTNIGHTS", now=date(2025, 1, 1))
    assert excinfo.value.dimension == "pe"
    assert excinfo.value.identifier == "LAST_5_FORTNIGHTS"


def test_passthrough_forwards_raw_periods():
    assert resolve_period("2024W01", allow_passthrough=True) == "2024W01"
    assert resolve_period("202401;202402", allow_passthrough=True) == ["202401", "202402"]


def test_passthrough_still_rejects_blank_token():
    with pytest.raises(InvalidSelectionError):
        resolve_period("", allow_passthrough=True)


@pytest.mark.parametrize(
    "earlier,later",
    [
        ("202412", "202501"),
        ("202409", "202410"),
        ("2024Q4", "2025Q1"),
        ("2024Q2", "2024Q3"),
        ("2024", "2025"),
        ("2024-12-31", "2025-01-01"),
        ("202401", "2024"),
        ("2024", "202501"),
        ("2024Q4", "202501"),
        ("2024-06-15", "202407"),
        ("202501", "2025W01"),
    ],
)
def test_comparator_orders_by_calendar_time(earlier, later):
    assert compare_concrete_periods(earlier, later) == -1
    assert compare_concrete_periods(later, earlier) == 1


def test_comparator_equal_periods():
    assert compare_concrete_periods("202403", "202403") == 0


def test_sort_key_matches_comparator():
    periods = ["202501", "2024Q4", "202412", "2024", "2024-12-05", "202311"]
    by_key = sorted(periods, key=period_sort_key)
    by_cmp = sorted(periods, key=cmp_to_key(compare_concrete_periods))
    assert by_key == by_cmp
    assert by_key.index("202412") < by_key.index("202501")
    assert by_key[0] == "202311"


def test_period_formatting():
    assert format_period_id("202406") == "2024-06"
    assert format_period_id("2024Q1") == "2024Q1"
    assert describe_period("202406") == "June 2024"
    assert describe_period("2024Q1") == "Q1 2024"
    assert describe_period("2024") == "Year 2024"
    assert describe_period("2024-06-01") == "2024-06-01"


def test_period_date_ranges():
    assert period_date_range(PeriodToken.LAST_12_MONTHS, now=date(2025, 3, 10)) == ("2024-04-01", "2025-03-31")
    assert period_date_range(PeriodToken.LAST_QUARTER, now=date(2025, 1, 5)) == ("2024-10-01", "2024-12-31")
    assert period_date_range(PeriodToken.THIS_MONTH, now=date(2024, 2, 10)) == ("2024-02-01", "2024-02-29")
    assert period_date_range(PeriodToken.LAST_YEAR, now=date(2024, 2, 10)) == ("2023-01-01", "2023-12-31")


def test_period_labels():
    assert period_label("LAST_12_MONTHS") == "Last 12 Months"
    assert period_label(PeriodToken.THIS_QUARTER) == "This Quarter"
    assert period_label("202401") == "202401"


@pytest.mark.parametrize("token", list(PeriodToken))
def test_date_range_covers_resolved_periods(token):
    now = date(2025, 1, 15)
    start, end = period_date_range(token, now=now)
    resolved = resolve_period(token, now=now)
    ids = resolved if isinstance(resolved, list) else [resolved]
    spans = [_iso_span(p) for p in ids]
    assert start == min(s for s, _ in spans)
    assert end == max(e for _, e in spans)


def test_date_range_rejects_unknown_token():
    with pytest.raises(InvalidSelectionError):
        period_date_range("NEXT_DECADE")


def _iso_span(period_id):
    key = period_sort_key(period_id)
    return key[1].isoformat(), key[2].isoformat()
