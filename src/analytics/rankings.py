from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from src.models.scoreboard import EmployeeRecord, MonthlyAggregateRecord, YearlyAggregateRecord

AggregateRecord = Union[MonthlyAggregateRecord, YearlyAggregateRecord]
A = TypeVar("A", MonthlyAggregateRecord, YearlyAggregateRecord)

TieBreak = Mapping[str, Tuple[datetime, str]]

_UNKNOWN_EMPLOYEE_SENIORITY = datetime.max.replace(tzinfo=timezone.utc)


def build_tie_break(employees: Iterable[EmployeeRecord]) -> Dict[str, Tuple[datetime, str]]:
    """Equal totals go to the employee created first, then to the lower id."""
    order: Dict[str, Tuple[datetime, str]] = {}
    for employee in employees:
        created_at = employee.created_at or _UNKNOWN_EMPLOYEE_SENIORITY
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        order[employee.id] = (created_at, employee.id)
    return order


def sort_aggregates(aggregates: Sequence[A], tie_break: Optional[TieBreak] = None) -> List[A]:
    tie_break = tie_break or {}

    def sort_key(item: Tuple[int, A]) -> tuple:
        position, aggregate = item
        known = aggregate.employee_id in tie_break
        seniority = tie_break.get(aggregate.employee_id, (_UNKNOWN_EMPLOYEE_SENIORITY, ""))
        # Unknown employees keep their input order behind known ones with the same total.
        return (-aggregate.total_points, 0 if known else 1, seniority, position)

    return [aggregate for _, aggregate in sorted(enumerate(aggregates), key=sort_key)]


def assign_ranks(aggregates: Sequence[AggregateRecord], tie_break: Optional[TieBreak] = None) -> Dict[str, int]:
    ranks: Dict[str, int] = {}
    for index, aggregate in enumerate(sort_aggregates(list(aggregates), tie_break), start=1):
        ranks.setdefault(aggregate.employee_id, index)
    return ranks


def rank_monthly(
    aggregates: Iterable[MonthlyAggregateRecord],
    month: int,
    year: int,
    tie_break: Optional[TieBreak] = None,
) -> Dict[str, int]:
    period_rows = [row for row in aggregates if row.month == month and row.year == year]
    return assign_ranks(period_rows, tie_break)


def rank_yearly(
    aggregates: Iterable[YearlyAggregateRecord],
    year: int,
    tie_break: Optional[TieBreak] = None,
) -> Dict[str, int]:
    period_rows = [row for row in aggregates if row.year == year]
    return assign_ranks(period_rows, tie_break)


def rank_all_months(
    aggregates: Iterable[MonthlyAggregateRecord],
    tie_break: Optional[TieBreak] = None,
) -> Dict[Tuple[int, int], Dict[str, int]]:
    by_period: Dict[Tuple[int, int], List[MonthlyAggregateRecord]] = {}
    for row in aggregates:
        by_period.setdefault((row.year, row.month), []).append(row)
    return {period: assign_ranks(rows, tie_break) for period, rows in by_period.items()}


def rank_all_years(
    aggregates: Iterable[YearlyAggregateRecord],
    tie_break: Optional[TieBreak] = None,
) -> Dict[int, Dict[str, int]]:
    by_year: Dict[int, List[YearlyAggregateRecord]] = {}
    for row in aggregates:
        by_year.setdefault(row.year, []).append(row)
    return {year: assign_ranks(rows, tie_break) for year, rows in by_year.items()}
