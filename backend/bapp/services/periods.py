"""
Cadence (period) helpers: pure functions, no DB.

A contract's period label maps to a cadence value in {0.5, 1, 2, 3, 4, 6, 12}.
0.5 is the half-month cadence: every month is active and has two sub-periods.
For any other cadence p, progress lives at the END month of each period,
so the active months are p, 2p, 3p, ... up to 12.
"""
import math
import re
from typing import List, Optional, Tuple

HALF_MONTH = 0.5

PERIOD_OPTIONS: Tuple[Tuple[float, str], ...] = (
    (0.5, "Per 1/2 Bulan"),
    (1, "Per 1 Bulan"),
    (2, "Per 2 Bulan"),
    (3, "Per 3 Bulan"),
    (4, "Per 4 Bulan"),
    (6, "Per 6 Bulan"),
    (12, "Per 12 Bulan"),
)
PERIOD_VALUES = tuple(v for v, _ in PERIOD_OPTIONS)

SHORT_MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")
MONTH_NAMES = ("JAN", "FEB", "MAR", "APR", "MEI", "JUN", "JUL", "AGS", "SEP", "OKT", "NOV", "DES")

_DIGITS = re.compile(r"\d+")


class InvalidPeriodError(ValueError):
    """Cadence value outside PERIOD_VALUES"""
    pass


def round_half_up(value: float) -> int:
    """Round .5 upwards (the dashboard has always rounded this way; Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def is_valid_period(value: float) -> bool:
    return value in PERIOD_VALUES


def parse_period_to_number(period: Optional[str]) -> float:
    """
    "Per 1/2 Bulan" -> 0.5, "Per 3 Bulan" / "3 bulan" -> 3.
    No number in the label falls back to 1 (monthly).
    """
    if not period:
        return 1
    if "1/2" in period:
        return HALF_MONTH
    m = _DIGITS.search(period)
    return int(m.group(0)) if m else 1


def is_half_month_period(period: Optional[str]) -> bool:
    return parse_period_to_number(period) == HALF_MONTH


def period_label(value: float) -> str:
    """Canonical label written back to bapp_contracts.period."""
    if not is_valid_period(value):
        raise InvalidPeriodError(f"Periode tidak valid: {value}")
    if value == HALF_MONTH:
        return "Per 1/2 Bulan"
    return f"Per {int(value)} Bulan"


def get_period_months(value: float) -> List[int]:
    """Active months for a cadence."""
    if value == HALF_MONTH:
        return list(range(1, 13))
    if not is_valid_period(value):
        raise InvalidPeriodError(f"Periode tidak valid: {value}")
    step = int(value)
    return list(range(step, 13, step))


def get_period_start_month(end_month: int, value: float) -> int:
    if value == HALF_MONTH:
        return end_month
    return end_month - int(value) + 1


def get_period_ranges(value: float) -> List[Tuple[int, int]]:
    """(start_month, end_month) of every period in the year."""
    return [(get_period_start_month(end, value), end) for end in get_period_months(value)]


def sub_periods_for(value: float) -> Tuple[int, ...]:
    return (1, 2) if value == HALF_MONTH else (1,)


def normalize_sub_period(sub_period: Optional[int]) -> int:
    """Rows created before half-month cadence existed have no sub_period; they are sub-period 1."""
    if sub_period is None or sub_period == 1:
        return 1
    return int(sub_period)


def percentage(completed_items: int, total_items: int) -> int:
    if total_items <= 0:
        return 0
    return round_half_up(completed_items / total_items * 100)


def calculate_progress(
    completed_signatures: int,
    total_signatures: int,
    is_upload_completed: bool,
) -> Tuple[int, int, int]:
    """(percentage, total_items, completed_items); the upload counts as one extra item."""
    total_items = total_signatures + 1
    completed_items = completed_signatures + (1 if is_upload_completed else 0)
    return percentage(completed_items, total_items), total_items, completed_items


def month_range_label(start_month: int, end_month: int) -> str:
    if start_month == end_month:
        return SHORT_MONTH_NAMES[start_month - 1]
    return f"{SHORT_MONTH_NAMES[start_month - 1]} - {SHORT_MONTH_NAMES[end_month - 1]}"
