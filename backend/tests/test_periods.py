"""
Cadence helpers (pure functions, no DB).
Covers: label parsing, active months, period labels, percentage rounding.
"""
import pytest

from bapp.services.periods import (
    InvalidPeriodError,
    calculate_progress,
    get_period_months,
    get_period_ranges,
    get_period_start_month,
    month_range_label,
    normalize_sub_period,
    parse_period_to_number,
    percentage,
    period_label,
)


@pytest.mark.parametrize(
    "label, value",
    [
        ("Per 1/2 Bulan", 0.5),
        ("Per 1 Bulan", 1),
        ("1 bulan", 1),
        ("Per 3 Bulan", 3),
        ("per 12 bulan", 12),
        ("Bulanan", 1),
        ("", 1),
        (None, 1),
    ],
)
def test_parse_period_to_number(label, value):
    assert parse_period_to_number(label) == value


def test_active_months_per_cadence():
    assert get_period_months(1) == list(range(1, 13))
    assert get_period_months(2) == [2, 4, 6, 8, 10, 12]
    assert get_period_months(3) == [3, 6, 9, 12]
    assert get_period_months(4) == [4, 8, 12]
    assert get_period_months(6) == [6, 12]
    assert get_period_months(12) == [12]


def test_half_month_has_all_months_active():
    assert get_period_months(0.5) == list(range(1, 13))


def test_unsupported_cadence_raises():
    with pytest.raises(InvalidPeriodError):
        get_period_months(5)
    with pytest.raises(InvalidPeriodError):
        period_label(7)


def test_period_label_round_trips_through_parser():
    for value in (0.5, 1, 2, 3, 4, 6, 12):
        assert parse_period_to_number(period_label(value)) == value
    assert period_label(0.5) == "Per 1/2 Bulan"
    assert period_label(3) == "Per 3 Bulan"


def test_period_ranges_and_start_month():
    assert get_period_ranges(3) == [(1, 3), (4, 6), (7, 9), (10, 12)]
    assert get_period_start_month(12, 6) == 7
    assert get_period_start_month(5, 0.5) == 5


def test_calculate_progress_counts_upload_as_item():
    # 3 signatures + upload = 4 items
    assert calculate_progress(2, 3, False) == (50, 4, 2)
    assert calculate_progress(3, 3, True) == (100, 4, 4)
    assert calculate_progress(0, 0, False) == (0, 1, 0)
    assert calculate_progress(0, 0, True) == (100, 1, 1)


def test_percentage_edges():
    assert percentage(0, 0) == 0
    assert percentage(0, 5) == 0
    assert percentage(5, 5) == 100


def test_percentage_rounds_half_up():
    """12.5 -> 13 and 37.5 -> 38 (round() would give 12 and 38)"""
    assert percentage(1, 8) == 13
    assert percentage(3, 8) == 38
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67


def test_normalize_sub_period_legacy():
    assert normalize_sub_period(None) == 1
    assert normalize_sub_period(1) == 1
    assert normalize_sub_period(2) == 2


def test_month_range_label():
    assert month_range_label(1, 3) == "Jan - Mar"
    assert month_range_label(8, 8) == "Agu"
