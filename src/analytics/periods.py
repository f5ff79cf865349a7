"""Calendar period helpers for scoreboard and badge computation.

Badges only look at periods that have fully elapsed and that fall in or after the
badge epoch year. The current month is never complete, even on its last day.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from src.shared.time import add_months

MonthKey = Tuple[int, int]  # (year, month)

MIN_MONTH_GAP_DAYS = 25
MAX_MONTH_GAP_DAYS = 35


class PeriodStatus(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


def is_month_complete(month: int, year: int, today: date, epoch_year: int) -> bool:
    if year < epoch_year:
        return False
    if year < today.year:
        return True
    return year == today.year and month < today.month


def is_year_complete(year: int, today: date, epoch_year: int) -> bool:
    return epoch_year <= year < today.year


def classify_month(month: int, year: int, today: date, epoch_year: int) -> PeriodStatus:
    if is_month_complete(month, year, today, epoch_year):
        return PeriodStatus.COMPLETE
    return PeriodStatus.INCOMPLETE


def classify_year(year: int, today: date, epoch_year: int) -> PeriodStatus:
    if is_year_complete(year, today, epoch_year):
        return PeriodStatus.COMPLETE
    return PeriodStatus.INCOMPLETE


def previous_month(today: date) -> MonthKey:
    start = add_months(today, -1)
    return start.year, start.month


def days_in_month(month: int, year: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_midpoint_day(month: int, year: int) -> int:
    return days_in_month(month, year) // 2


def month_bounds(month: int, year: int, tz: tzinfo) -> Tuple[datetime, datetime]:
    start = date(year, month, 1)
    end = add_months(start, 1)
    return (
        datetime(start.year, start.month, 1, tzinfo=tz),
        datetime(end.year, end.month, 1, tzinfo=tz),
    )


def badge_years(today: date, epoch_year: int, lookback_years: int) -> List[int]:
    first_year = max(epoch_year, today.year - lookback_years + 1)
    return list(range(today.year, first_year - 1, -1))


def _month_gap_days(later: MonthKey, earlier: MonthKey) -> int:
    return (date(later[0], later[1], 1) - date(earlier[0], earlier[1], 1)).days


def find_consecutive_windows(periods: Iterable[MonthKey], size: int) -> List[List[MonthKey]]:
    """Return every run of ``size`` calendar-adjacent months among ``periods``.

    Periods are ordered newest first. A window qualifies when each pair of
    neighbours is 25-35 days apart, measured between the first days of the
    months. What made a month a candidate is the caller's concern.
    """
    if size <= 0:
        return []
    ordered: Sequence[MonthKey] = sorted(set(periods), reverse=True)
    windows: List[List[MonthKey]] = []
    for start in range(0, len(ordered) - size + 1):
        window = list(ordered[start : start + size])
        gaps_ok = all(
            MIN_MONTH_GAP_DAYS <= _month_gap_days(window[i], window[i + 1]) <= MAX_MONTH_GAP_DAYS
            for i in range(size - 1)
        )
        if gaps_ok:
            windows.append(window)
    return windows


def has_consecutive_run(periods: Iterable[MonthKey], size: int) -> bool:
    return bool(find_consecutive_windows(periods, size))
